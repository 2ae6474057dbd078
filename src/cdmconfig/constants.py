"""Remote endpoints, workflow output names and name-path separators."""

NAME_PATH_SEPARATOR = "�"
LEGACY_NAME_PATH_SEPARATOR = "/"

# Encoded query operators of the Table API
QUERY_SEPARATOR = "^"
ORDER_BY = "ORDERBY"
ORDER_BY_DESC = "ORDERBYDESC"


class API:
    IMPACTED_DEPLOYABLES = "/api/sn_cdm/changesets/impacted-deployables"
    UPLOAD_CONFIG_DATA = "/api/sn_cdm/applications/uploads"
    UPLOAD_STATUS = "/api/sn_cdm/applications/upload-status"
    CDM_CHANGESET_TABLE = "/api/now/table/sn_cdm_changeset"
    CDM_SNAPSHOT_TABLE = "/api/now/table/sn_cdm_snapshot"
    CDM_SNAPSHOT_VALIDATE = "/api/sn_cdm/snapshots/{sys_id}/validate"
    CDM_SNAPSHOT_PUBLISH = "/api/sn_cdm/snapshots/{sys_id}/publish"
    CDM_POLICY_VALIDATION_RESULT = "/api/now/table/sn_cdm_policy_validation_result"


class OUTPUT:
    VALIDATION_STATUS = "validation-status"
    CHANGESET_NUMBER = "changeset-number"
    SNAPSHOT_NAME = "snapshot-name"
    VALIDATION_RESULTS = "validation-results"
    VALIDATION_RESULTS_SARIF_FILE = "validation-results.sarif"
    VALIDATION_RESULTS_JSON_FILE = "validation-results.json"


SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"
SARIF_VERSION = "2.1.0"
SARIF_TOOL_NAME = "Devops config policy content pack"
SARIF_TOOL_VERSION = "1.2.0"
