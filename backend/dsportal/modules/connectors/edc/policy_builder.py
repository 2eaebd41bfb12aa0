"""
Membership governance resources shared by every published asset.

All uploaded files are tagged with one private property, and a single policy
and contract definition pair selects them: a consumer has to present an
active MembershipCredential to see any of them. The ids are fixed so repeated
creation attempts collide instead of multiplying.
"""

from __future__ import annotations

from dsportal.modules.connectors.edc.models import (
    EDC_NAMESPACE,
    CelExpression,
    ContractDefinition,
    Criterion,
    ODRLConstraint,
    ODRLPolicy,
    ODRLRule,
    PolicyDefinition,
)

PERMISSION_PROPERTY = f"{EDC_NAMESPACE}permission"
ASSET_PERMISSION = "membership_asset"
MEMBERSHIP_POLICY_ID = "membership_policy"
MEMBERSHIP_CONTRACT_DEFINITION_ID = "membership_contract_definition"
MEMBERSHIP_EXPRESSION_ID = "membership_expression"
MEMBERSHIP_LEFT_OPERAND = "MembershipCredential"

_MEMBERSHIP_CEL = (
    "ctx.agent.claims.vc"
    ".filter(c, c.type.exists(t, t == 'MembershipCredential'))"
    ".exists(c, c.credentialSubject.exists(cs, "
    "timestamp(cs.membershipStartDate) < now))"
)


def build_membership_expression() -> CelExpression:
    """CEL expression backing the ``MembershipCredential`` left operand."""
    return CelExpression(
        expression_id=MEMBERSHIP_EXPRESSION_ID,
        left_operand=MEMBERSHIP_LEFT_OPERAND,
        expression=_MEMBERSHIP_CEL,
        description="Requires an active MembershipCredential",
        scopes=["catalog", "contract.negotiation", "transfer.process"],
    )


def build_membership_policy() -> PolicyDefinition:
    """``use`` permission constrained to ``MembershipCredential eq active``."""
    permission = ODRLRule(
        action="use",
        constraints=[
            ODRLConstraint(
                left_operand=MEMBERSHIP_LEFT_OPERAND,
                operator="eq",
                right_operand="active",
            )
        ],
    )
    return PolicyDefinition(
        policy_id=MEMBERSHIP_POLICY_ID,
        policy=ODRLPolicy(permissions=[permission]),
    )


def build_membership_contract_definition() -> ContractDefinition:
    """Contract definition selecting every asset tagged as a membership asset."""
    return ContractDefinition(
        contract_id=MEMBERSHIP_CONTRACT_DEFINITION_ID,
        access_policy_id=MEMBERSHIP_POLICY_ID,
        contract_policy_id=MEMBERSHIP_POLICY_ID,
        assets_selector=[
            Criterion(
                operand_left=f"privateProperties.'{PERMISSION_PROPERTY}'",
                operator="=",
                operand_right=ASSET_PERMISSION,
            )
        ],
    )
