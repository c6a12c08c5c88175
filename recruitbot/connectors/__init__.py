# recruitbot/connectors/__init__.py
from .whatsapp import WhatsAppClient

# Registry of outbound channels
CONNECTORS = {
    "whatsapp": WhatsAppClient,
}


def get_connector(platform: str, **kwargs):
    """Builds the connector for a channel name"""
    connector_cls = CONNECTORS.get(platform)
    if not connector_cls:
        raise ValueError(f"Connector for platform '{platform}' not found")
    return connector_cls(**kwargs)
