import logging
from typing import Dict, List, Optional, Tuple

import requests

from app.api.serializers import template_from_response, template_to_request, work_unit_from_model
from app.config import API_BASE_URL, API_TIMEOUT
from app.errors import NetworkError, NotFoundError, TreeValidationError
from app.schemas import (
    IntakeCreatedResponse,
    IntakeRequest,
    IntakeResponse,
    SaveTemplateResponse,
    TemplateResponse,
    WorkUnitModel,
)
from app.tree.types import Template, WorkUnit

logger = logging.getLogger(__name__)


class TemplateApiClient:
    """
    Blocking client for the estimator API, used by the editor session.

    Every transport failure or non-2xx reply surfaces as NetworkError,
    except 404 (NotFoundError) and 422 (TreeValidationError).
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = API_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        entity: Tuple[str, str] = ("resource", ""),
        **kwargs,
    ):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise NetworkError(operation, e) from e

        if response.status_code == 404:
            raise NotFoundError(entity[0], entity[1] or path)
        if response.status_code == 422:
            detail = _detail(response)
            issues = detail if isinstance(detail, list) else [str(detail)]
            raise TreeValidationError([str(i) for i in issues])

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            logger.warning("%s %s returned %s", method, url, response.status_code)
            raise NetworkError(operation, e, status_code=response.status_code) from e

        return response.json()

    # ---------- templates ----------

    def fetch_template(self, template_id: str) -> Template:
        data = self._request(
            "GET", f"/api/templates/{template_id}", "fetch_template", entity=("template", template_id)
        )
        return template_from_response(TemplateResponse.model_validate(data))

    def create_template(self, template: Template) -> str:
        payload = template_to_request(template).model_dump(mode="json")
        data = self._request("POST", "/api/templates", "create_template", json=payload)
        return SaveTemplateResponse.model_validate(data).template_id

    def update_template(self, template_id: str, template: Template) -> str:
        payload = template_to_request(template).model_dump(mode="json")
        data = self._request(
            "PUT",
            f"/api/templates/{template_id}",
            "update_template",
            entity=("template", template_id),
            json=payload,
        )
        return SaveTemplateResponse.model_validate(data).template_id

    # ---------- intakes ----------

    def submit_intake(self, template_id: str, answers: Dict[str, str]) -> str:
        payload = IntakeRequest(template_id=template_id, answers=answers).model_dump(mode="json")
        data = self._request(
            "POST",
            "/api/completed-intakes",
            "submit_intake",
            entity=("template", template_id),
            json=payload,
        )
        return IntakeCreatedResponse.model_validate(data).id

    def fetch_intake(self, intake_id: str) -> IntakeResponse:
        data = self._request(
            "GET", f"/api/completed-intakes/{intake_id}", "fetch_intake", entity=("intake", intake_id)
        )
        return IntakeResponse.model_validate(data)

    # ---------- catalog ----------

    def list_work_units(self) -> List[WorkUnit]:
        data = self._request("GET", "/api/work-units", "list_work_units")
        return [work_unit_from_model(WorkUnitModel.model_validate(item)) for item in data]


def _detail(response):
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return data.get("detail", response.text)
    return data
