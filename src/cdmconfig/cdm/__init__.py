"""ServiceNow DevOps Config API access."""

from cdmconfig.cdm.client import CdmClient, require_field

__all__ = ["CdmClient", "require_field"]
