"""
Map an uploaded file to a control plane asset.

The asset's data address points at the data plane's public data API; the data
plane resolves the stored file through the ``assetId`` it was uploaded with.
"""

from __future__ import annotations

from typing import Any

from dsportal.modules.connectors.edc.models import EDC_NAMESPACE, EDCAsset
from dsportal.modules.connectors.edc.policy_builder import (
    ASSET_PERMISSION,
    PERMISSION_PROPERTY,
)


def map_file_to_edc_asset(
    asset_id: str,
    file_name: str,
    content_type: str,
    metadata: dict[str, str],
    data_plane_url: str,
) -> EDCAsset:
    """
    Build the asset registered for one published file.

    Args:
        asset_id: Fresh asset id, also sent to the data plane with the upload.
        file_name: Original file name, exposed as the asset name.
        content_type: MIME type of the file.
        metadata: Caller supplied metadata, copied into public properties.
        data_plane_url: Root URL of the data plane.

    Returns:
        An ``EDCAsset`` tagged with the membership private property.
    """
    properties: dict[str, Any] = {
        "name": file_name,
        "contenttype": content_type,
    }
    for key, value in metadata.items():
        properties.setdefault(key, value)

    data_address: dict[str, Any] = {
        "type": "HttpData",
        "baseUrl": f"{data_plane_url.rstrip('/')}/app/public/api/data",
        "proxyPath": "true",
        f"{EDC_NAMESPACE}assetId": asset_id,
    }

    return EDCAsset(
        asset_id=asset_id,
        properties=properties,
        private_properties={PERMISSION_PROPERTY: ASSET_PERMISSION},
        data_address=data_address,
    )
