from app.repository.save_builder import TemplateSaveBuilder
from app.repository.template_store import DEFAULT_TEAMS, TemplateStore

__all__ = ["DEFAULT_TEAMS", "TemplateSaveBuilder", "TemplateStore"]
