"""Internal constants shared across the library."""

DEFAULT_NODE_ID = "smartvineyardnode"
DEFAULT_MESSAGE_FIELD = "message"
DEFAULT_REFRESH_INTERVAL = 30.0
PLACEHOLDER = "--"

# Wire format: "AT:2500,AH:6200,..."
FIELD_SEPARATOR = ","
KEY_VALUE_SEPARATOR = ":"
