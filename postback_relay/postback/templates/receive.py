from .types import FieldMapping, ReceiveTemplate, TemplateSetting, ValidationConfig

generic_template = ReceiveTemplate(
    id="generic",
    name="Generic",
    description="Generic postback with common field names (click_id, revenue, status)",
    source="Generic",
    validation=ValidationConfig(type="none"),
    field_mappings=(
        FieldMapping("click_id", "clickId", "string"),
        FieldMapping("clickid", "clickId", "string"),
        FieldMapping("cid", "clickId", "string"),
        FieldMapping("revenue", "revenue", "number"),
        FieldMapping("payout", "revenue", "number"),
        FieldMapping("amount", "revenue", "number"),
        FieldMapping("status", "status", "string"),
        FieldMapping("event", "status", "string"),
        FieldMapping("transaction_id", "transactionId", "string"),
        FieldMapping("txn_id", "transactionId", "string"),
        FieldMapping("order_id", "transactionId", "string"),
        FieldMapping("currency", "currency", "string"),
        FieldMapping("sub1", "subId1", "string"),
        FieldMapping("sub2", "subId2", "string"),
        FieldMapping("sub3", "subId3", "string"),
        FieldMapping("sub4", "subId4", "string"),
        FieldMapping("sub5", "subId5", "string"),
        FieldMapping("subid1", "subId1", "string"),
        FieldMapping("subid2", "subId2", "string"),
        FieldMapping("subid3", "subId3", "string"),
        FieldMapping("subid4", "subId4", "string"),
        FieldMapping("subid5", "subId5", "string"),
    ),
    standard_fields={
        "clickId": "click_id",
        "revenue": "revenue",
        "status": "status",
        "transactionId": "transaction_id",
        "currency": "currency",
    },
)

# Chaturbate signs each postback with MD5(salt + log_id + attempt)
chaturbate_template = ReceiveTemplate(
    id="chaturbate",
    name="Chaturbate",
    description="Chaturbate affiliate program postbacks with MD5 validation",
    source="Chaturbate",
    docs_url="https://chaturbate.com/affiliates/",
    validation=ValidationConfig(
        type="md5",
        fields=("log_id", "attempt"),
        checksum_field="checksum",
        salt_config_key="validationSalt",
        formula="{{salt}}{{log_id}}{{attempt}}",
    ),
    field_mappings=(
        FieldMapping("click_id", "clickId", "string"),
        FieldMapping("log_id", "transactionId", "string"),
        FieldMapping("token_amount", "revenue", "number"),
        FieldMapping("conversion_type", "status", "string"),
        FieldMapping("campaign", "subId1", "string"),
        FieldMapping("tour", "subId2", "string"),
        FieldMapping("track", "subId3", "string"),
    ),
    standard_fields={
        "clickId": "click_id",
        "revenue": "token_amount",
        "status": "conversion_type",
        "transactionId": "log_id",
    },
    config_schema=(
        TemplateSetting(
            key="validationSalt",
            label="Validation Salt",
            required=True,
            description="The salt phrase configured in your Chaturbate affiliate settings",
        ),
    ),
)

# ClickBank INS relies on IP allowlisting and a secret key, not a checksum field
clickbank_template = ReceiveTemplate(
    id="clickbank",
    name="ClickBank",
    description="ClickBank Instant Notification Service (INS) postbacks",
    source="ClickBank",
    docs_url="https://support.clickbank.com/hc/en-us/articles/220364967",
    validation=ValidationConfig(type="none"),
    field_mappings=(
        FieldMapping("ctransreceipt", "transactionId", "string"),
        FieldMapping("ctransamount", "revenue", "number"),
        FieldMapping("ccurrency", "currency", "string"),
        FieldMapping("ctransaction", "status", "string"),
        FieldMapping("caffitid", "clickId", "string"),
        FieldMapping("ctid", "subId1", "string"),
    ),
    standard_fields={
        "clickId": "caffitid",
        "revenue": "ctransamount",
        "status": "ctransaction",
        "transactionId": "ctransreceipt",
        "currency": "ccurrency",
        "subId1": "ctid",
    },
    config_schema=(
        TemplateSetting(
            key="secretKey",
            label="Secret Key",
            description="Your ClickBank INS secret key (optional, for verification)",
        ),
    ),
)

RECEIVE_TEMPLATES = (generic_template, chaturbate_template, clickbank_template)
