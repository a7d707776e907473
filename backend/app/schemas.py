from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional, Dict, List, Literal


class PositionModel(BaseModel):
    x: float
    y: float


class AnswerModel(BaseModel):
    text: str
    target_id: Optional[str] = None  # id of another node in the same request
    work_unit_id: Optional[str] = None  # catalog work unit


class NodeModel(BaseModel):
    id: str
    kind: Literal["decision", "leaf"] = "decision"
    content: str = ""
    position: Optional[PositionModel] = None
    answers: List[AnswerModel] = []


class WorkUnitModel(BaseModel):
    id: str
    name: str
    team_id: str
    hours: int = Field(ge=0)


class WorkUnitCreate(BaseModel):
    name: str
    team_id: str
    hours: int = Field(ge=0)
    description: str = ""


class TeamModel(BaseModel):
    id: str
    name: str
    description: str = ""


class TemplateRequest(BaseModel):
    """Body of POST/PUT /api/templates. Node ids may be temporary client ids."""
    name: str
    description: str = ""
    complexity: Literal["Low", "Medium", "High"] = "Medium"
    estimated_duration: str = ""
    nodes: List[NodeModel] = []


class TemplateSummary(BaseModel):
    id: str
    name: str
    description: str = ""
    complexity: str = "Medium"
    estimated_duration: str = ""
    teams: List[str] = []
    is_entry_point: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TemplateResponse(TemplateSummary):
    nodes: List[NodeModel] = []
    work_units: Dict[str, WorkUnitModel] = {}  # keyed by AnswerModel.work_unit_id


class SaveTemplateResponse(BaseModel):
    success: bool = True
    template_id: str


class EntryPointCreate(BaseModel):
    template_id: str
    name: str
    description: str = ""


class EntryPointModel(EntryPointCreate):
    id: str
    is_active: bool = True


class EntryPointToggleResponse(BaseModel):
    template_id: str
    is_entry_point: bool


class IntakeRequest(BaseModel):
    template_id: str
    answers: Dict[str, str]  # node id -> chosen answer text


class IntakeCreatedResponse(BaseModel):
    id: str


class EstimateItemModel(BaseModel):
    node_id: str
    question: str
    work_unit_id: str
    name: str
    hours: int


class TeamEstimateModel(BaseModel):
    team_id: str
    total_hours: int
    items: List[EstimateItemModel] = []


class EstimateResponse(BaseModel):
    teams: Dict[str, TeamEstimateModel] = {}
    total_hours: int = 0


class IntakeResponse(BaseModel):
    id: str
    template_id: str
    answers: Dict[str, str]
    created_at: datetime
    template: TemplateResponse
    estimate: EstimateResponse


class EstimateRequest(BaseModel):
    """Preview an estimate for an unsaved tree."""
    nodes: List[NodeModel]
    answers: Dict[str, str]
    work_units: Dict[str, WorkUnitModel] = {}


class WalkRequest(BaseModel):
    answers: Dict[str, str] = {}


class WalkResponse(BaseModel):
    """Questionnaire progress for a saved template."""
    order: List[str]             # every node, breadth-first from the roots
    path: List[str]              # nodes reached by following the answers
    current_node_id: Optional[str] = None
    estimate: EstimateResponse


class LayoutRequest(BaseModel):
    nodes: List[NodeModel]


class LayoutResponse(BaseModel):
    nodes: List[NodeModel]


class CanvasRequest(BaseModel):
    nodes: List[NodeModel]
    work_units: Dict[str, WorkUnitModel] = {}
    zoom: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    selected_id: Optional[str] = None
    reorganize: bool = False  # run the auto layout before drawing
