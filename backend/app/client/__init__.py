from app.client.api_client import TemplateApiClient

__all__ = ["TemplateApiClient"]
