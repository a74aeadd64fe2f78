from .types import RelayTemplate, TemplateSetting

generic_webhook_template = RelayTemplate(
    id="generic-webhook",
    name="Generic Webhook",
    description="Forward postback data as JSON to any webhook URL",
    destination="Custom Webhook",
    method="POST",
    format="json",
    url_template="{{webhookUrl}}",
    headers={
        "Content-Type": "application/json",
        "X-Postback-Source": "postback-relay",
    },
    body_template={
        "click_id": "{{clickId}}",
        "transaction_id": "{{transactionId}}",
        "revenue": "{{revenue}}",
        "currency": "{{currency}}",
        "status": "{{status}}",
        "sub_id_1": "{{subId1}}",
        "sub_id_2": "{{subId2}}",
        "sub_id_3": "{{subId3}}",
        "timestamp": "{{timestamp}}",
    },
    config_schema=(
        TemplateSetting(
            key="webhookUrl",
            label="Webhook URL",
            required=True,
            description="The URL to send the postback data to",
        ),
    ),
)

facebook_capi_template = RelayTemplate(
    id="facebook-capi",
    name="Facebook Conversions API",
    description="Send conversion events to Facebook CAPI for server-side tracking",
    destination="Facebook",
    docs_url="https://developers.facebook.com/docs/marketing-api/conversions-api",
    method="POST",
    format="json",
    url_template="https://graph.facebook.com/v18.0/{{pixelId}}/events?access_token={{accessToken}}",
    headers={"Content-Type": "application/json"},
    body_template={
        "data": [
            {
                "event_name": "Purchase",
                "event_time": "{{timestamp}}",
                "event_id": "{{transactionId}}",
                "event_source_url": "{{sourceUrl}}",
                "action_source": "website",
                "user_data": {
                    "fbp": "{{clickId}}",
                    "client_ip_address": "{{clientIp}}",
                    "client_user_agent": "{{userAgent}}",
                },
                "custom_data": {
                    "currency": "{{currency|default:USD}}",
                    "value": "{{revenue}}",
                },
            },
        ],
    },
    config_schema=(
        TemplateSetting(key="pixelId", label="Pixel ID", required=True,
                        description="Your Facebook Pixel ID"),
        TemplateSetting(key="accessToken", label="Access Token", required=True,
                        description="Facebook Conversions API access token"),
    ),
)

google_ads_template = RelayTemplate(
    id="google-ads",
    name="Google Ads Conversions",
    description="Send offline conversions to Google Ads",
    destination="Google Ads",
    docs_url="https://developers.google.com/google-ads/api/docs/conversions/overview",
    method="POST",
    format="json",
    url_template="https://googleads.googleapis.com/v14/customers/{{customerId}}:uploadClickConversions",
    headers={
        "Content-Type": "application/json",
        "Authorization": "Bearer {{accessToken}}",
        "developer-token": "{{developerToken}}",
    },
    body_template={
        "conversions": [
            {
                "gclid": "{{clickId}}",
                "conversion_action": "{{conversionAction}}",
                "conversion_date_time": "{{timestamp}}",
                "conversion_value": "{{revenue}}",
                "currency_code": "{{currency|default:USD}}",
                "order_id": "{{transactionId}}",
            },
        ],
        "partialFailure": True,
    },
    config_schema=(
        TemplateSetting(key="customerId", label="Customer ID", required=True,
                        description="Google Ads customer ID (without dashes)"),
        TemplateSetting(key="conversionAction", label="Conversion Action", required=True,
                        description="Resource name of the conversion action"),
        TemplateSetting(key="accessToken", label="Access Token", required=True,
                        description="OAuth2 access token"),
        TemplateSetting(key="developerToken", label="Developer Token", required=True,
                        description="Google Ads API developer token"),
    ),
)

RELAY_TEMPLATES = (generic_webhook_template, facebook_capi_template, google_ads_template)
