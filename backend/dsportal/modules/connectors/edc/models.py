"""
Pydantic models for the connector control plane Management API payloads.

Local field names are snake_case; ``to_edc_payload()`` renders the JSON-LD
body the control plane expects.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

EDC_NAMESPACE = "https://w3id.org/edc/v0.0.1/ns/"
MANAGEMENT_CONTEXT = "https://w3id.org/edc/connector/management/v2"
DSP_PROTOCOL = "dataspace-protocol-http:2025-1"


def _context() -> list[str]:
    return [MANAGEMENT_CONTEXT]


# ---------------------------------------------------------------------------
# CEL expression
# ---------------------------------------------------------------------------


class CelExpression(BaseModel):
    """CEL expression evaluated by the control plane for a policy left operand."""

    expression_id: str
    left_operand: str
    expression: str
    description: str = ""
    scopes: list[str] = Field(default_factory=list)

    def to_edc_payload(self) -> dict[str, Any]:
        return {
            "@context": _context(),
            "@type": "CelExpression",
            "@id": self.expression_id,
            "leftOperand": self.left_operand,
            "expression": self.expression,
            "description": self.description,
            "scopes": self.scopes,
        }


# ---------------------------------------------------------------------------
# Asset
# ---------------------------------------------------------------------------


class EDCAsset(BaseModel):
    """Asset with public and private properties and a data address."""

    asset_id: str
    properties: dict[str, Any] = Field(default_factory=dict)
    private_properties: dict[str, Any] = Field(default_factory=dict)
    data_address: dict[str, Any] = Field(default_factory=dict)

    def to_edc_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "@context": _context(),
            "@type": "Asset",
            "@id": self.asset_id,
            "properties": self.properties,
            "dataAddress": {"@type": "DataAddress", **self.data_address},
        }
        if self.private_properties:
            payload["privateProperties"] = self.private_properties
        return payload


# ---------------------------------------------------------------------------
# ODRL Policy
# ---------------------------------------------------------------------------


class ODRLConstraint(BaseModel):
    """Single ODRL constraint (left operand / operator / right operand)."""

    left_operand: str
    operator: str
    right_operand: str

    def to_edc_payload(self) -> dict[str, Any]:
        return {
            "leftOperand": self.left_operand,
            "operator": self.operator,
            "rightOperand": self.right_operand,
        }


class ODRLRule(BaseModel):
    """ODRL permission, prohibition or obligation with optional constraints."""

    action: str = "use"
    constraints: list[ODRLConstraint] = Field(default_factory=list)

    def to_edc_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"action": self.action}
        if self.constraints:
            payload["constraint"] = [c.to_edc_payload() for c in self.constraints]
        return payload


class ODRLPolicy(BaseModel):
    """ODRL policy expression."""

    policy_type: str = "Set"
    permissions: list[ODRLRule] = Field(default_factory=list)
    prohibitions: list[ODRLRule] = Field(default_factory=list)
    obligations: list[ODRLRule] = Field(default_factory=list)
    assigner: str | None = None
    target: str | None = None
    offer_id: str | None = None

    def to_edc_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "@type": self.policy_type,
            "permission": [p.to_edc_payload() for p in self.permissions],
            "prohibition": [p.to_edc_payload() for p in self.prohibitions],
            "obligation": [o.to_edc_payload() for o in self.obligations],
        }
        if self.offer_id:
            payload["@id"] = self.offer_id
        if self.assigner:
            payload["assigner"] = self.assigner
        if self.target:
            payload["target"] = self.target
        return payload


class PolicyDefinition(BaseModel):
    """ODRL policy wrapper registered with the control plane."""

    policy_id: str
    policy: ODRLPolicy

    def to_edc_payload(self) -> dict[str, Any]:
        return {
            "@context": _context(),
            "@type": "PolicyDefinition",
            "@id": self.policy_id,
            "policy": self.policy.to_edc_payload(),
        }


# ---------------------------------------------------------------------------
# Contract Definition
# ---------------------------------------------------------------------------


class Criterion(BaseModel):
    operand_left: str
    operator: str
    operand_right: Any

    def to_edc_payload(self) -> dict[str, Any]:
        return {
            "@type": "Criterion",
            "operandLeft": self.operand_left,
            "operator": self.operator,
            "operandRight": self.operand_right,
        }


class ContractDefinition(BaseModel):
    """Links assets, selected by criteria, to access and contract policies."""

    contract_id: str
    access_policy_id: str
    contract_policy_id: str
    assets_selector: list[Criterion] = Field(default_factory=list)

    def to_edc_payload(self) -> dict[str, Any]:
        return {
            "@context": _context(),
            "@type": "ContractDefinition",
            "@id": self.contract_id,
            "accessPolicyId": self.access_policy_id,
            "contractPolicyId": self.contract_policy_id,
            "assetsSelector": [c.to_edc_payload() for c in self.assets_selector],
        }


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class QuerySpec(BaseModel):
    offset: int = 0
    limit: int = 50
    filter_expression: list[Criterion] = Field(default_factory=list)

    def to_edc_payload(self) -> dict[str, Any]:
        return {
            "@context": _context(),
            "@type": "QuerySpec",
            "offset": self.offset,
            "limit": self.limit,
            "filterExpression": [c.to_edc_payload() for c in self.filter_expression],
        }


# ---------------------------------------------------------------------------
# Data plane registration
# ---------------------------------------------------------------------------


class DataplaneRegistration(BaseModel):
    url: str
    allowed_source_types: list[str] = Field(default_factory=list)
    allowed_transfer_types: list[str] = Field(default_factory=list)
    destination_provisioning_types: list[str] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)

    def to_edc_payload(self) -> dict[str, Any]:
        return {
            "@context": _context(),
            "url": self.url,
            "allowedSourceTypes": self.allowed_source_types,
            "allowedTransferTypes": self.allowed_transfer_types,
            "destinationProvisioningTypes": self.destination_provisioning_types,
            "properties": self.properties,
        }


# ---------------------------------------------------------------------------
# Contract negotiation
# ---------------------------------------------------------------------------


class ContractRequest(BaseModel):
    """DSP contract request sent to a counter-party connector."""

    counter_party_address: str
    offer_id: str
    asset_id: str
    provider_id: str
    permissions: list[ODRLRule] = Field(default_factory=lambda: [ODRLRule()])
    prohibitions: list[ODRLRule] = Field(default_factory=list)
    obligations: list[ODRLRule] = Field(default_factory=list)
    protocol: str = DSP_PROTOCOL

    def to_edc_payload(self) -> dict[str, Any]:
        policy = ODRLPolicy(
            policy_type="Offer",
            permissions=self.permissions,
            prohibitions=self.prohibitions,
            obligations=self.obligations,
            assigner=self.provider_id,
            target=self.asset_id,
            offer_id=self.offer_id,
        )
        return {
            "@context": _context(),
            "@type": "ContractRequest",
            "counterPartyAddress": self.counter_party_address,
            "protocol": self.protocol,
            "policy": policy.to_edc_payload(),
        }


class NegotiationState(BaseModel):
    """Contract negotiation state returned by the control plane."""

    negotiation_id: str
    state: str
    contract_agreement_id: str | None = None
    counter_party_id: str | None = None
    error_detail: str | None = None

    @classmethod
    def from_edc(cls, data: dict[str, Any]) -> NegotiationState:
        return cls(
            negotiation_id=str(data.get("@id", "")),
            state=str(data.get("state", "INITIAL")),
            contract_agreement_id=data.get("contractAgreementId"),
            counter_party_id=data.get("counterPartyId"),
            error_detail=data.get("errorDetail"),
        )


# ---------------------------------------------------------------------------
# Transfer process
# ---------------------------------------------------------------------------


class TransferRequest(BaseModel):
    """DSP transfer request for an agreed contract."""

    counter_party_address: str
    contract_id: str
    transfer_type: str = "HttpData-PULL"
    data_destination: dict[str, Any] | None = None
    protocol: str = DSP_PROTOCOL

    def to_edc_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "@context": _context(),
            "@type": "TransferRequest",
            "protocol": self.protocol,
            "counterPartyAddress": self.counter_party_address,
            "contractId": self.contract_id,
            "transferType": self.transfer_type,
        }
        if self.data_destination:
            payload["dataDestination"] = self.data_destination
        return payload


class TransferProcessState(BaseModel):
    """Transfer process state returned by the control plane."""

    transfer_id: str
    state: str
    contract_id: str | None = None
    asset_id: str | None = None
    transfer_type: str | None = None
    error_detail: str | None = None

    @classmethod
    def from_edc(cls, data: dict[str, Any]) -> TransferProcessState:
        return cls(
            transfer_id=str(data.get("@id", "")),
            state=str(data.get("state", "INITIAL")),
            contract_id=data.get("contractId"),
            asset_id=data.get("assetId"),
            transfer_type=data.get("transferType"),
            error_detail=data.get("errorDetail"),
        )
