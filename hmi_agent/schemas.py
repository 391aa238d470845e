from typing import Any, Dict, List, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase keys, serializes camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --------------------------------------------
# Document analysis
# --------------------------------------------
class KeywordProfile(CamelModel):
    system_type: List[str] = Field(default_factory=lambda: ["industrial_control"])
    components: List[str] = Field(default_factory=list)
    operations: List[str] = Field(default_factory=list)
    controls: List[str] = Field(default_factory=list)

    @property
    def primary_type(self) -> str:
        return self.system_type[0] if self.system_type else "industrial_control"


class Section(CamelModel):
    heading: str
    content: List[str] = Field(default_factory=list)
    synthetic: bool = False  # implicit leading section, heading is not a document line

    def source_lines(self) -> List[str]:
        if self.synthetic:
            return list(self.content)
        return [self.heading] + list(self.content)


class Screen(CamelModel):
    screen_id: str
    screen_name: str
    screen_purpose: str = ""
    screen_type: str = "control"


class ScreenIdentification(CamelModel):
    total_screens: int = 0
    screen_list: List[Screen] = Field(default_factory=list)
    reasoning: str = ""
    source: Literal["model", "template"] = "model"


# --------------------------------------------
# Workflow
# --------------------------------------------
class SystemOverview(CamelModel):
    system_name: str
    system_type: str
    total_screens: int
    primary_function: str = ""
    expert_review: str = ""


class ScreenAnalysis(CamelModel):
    screen_name: str
    screen_number: int
    purpose: str = ""
    key_elements: List[str] = Field(default_factory=list)
    functionality: List[str] = Field(default_factory=list)
    element_details: Dict[str, Any] = Field(default_factory=dict)
    navigation: Dict[str, Any] = Field(default_factory=dict)
    behavior: str = ""
    data_visualization: str = ""
    user_roles: str = ""
    design_rationale: str = ""


class Transition(CamelModel):
    from_screen: str = Field(alias="from")
    to_screen: str = Field(alias="to")
    trigger: str = "User selection"
    description: str = ""


class NavigationFlow(CamelModel):
    diagram: str = ""
    transitions: List[Transition] = Field(default_factory=list)


class WorkflowDiagram(CamelModel):
    workflow_type: str = "template_based"
    system_overview: SystemOverview
    screen_analysis: List[ScreenAnalysis] = Field(default_factory=list)
    navigation_flow: NavigationFlow = Field(default_factory=NavigationFlow)
    technical_specifications: Dict[str, str] = Field(default_factory=dict)
    implementation_notes: List[str] = Field(default_factory=list)


# --------------------------------------------
# Screen specification
# --------------------------------------------
class Position(CamelModel):
    x: float = 0
    y: float = 0
    width: float = 150
    height: float = 40


class Element(CamelModel):
    type: str = "control_button"
    label: str = ""
    position: Position = Field(default_factory=Position)
    style: Dict[str, Any] = Field(default_factory=dict)
    headers: Optional[List[str]] = None
    rows: Optional[int] = None
    value: Optional[float] = None
    purpose: Optional[str] = None
    user_action: Optional[str] = None


class HeaderLayout(CamelModel):
    title: str = ""
    height: int = 80
    background_color: str = "#2C3E50"
    title_color: str = "#ECF0F1"
    elements: List[Element] = Field(default_factory=list)


class MainArea(CamelModel):
    background_color: str = "#34495E"
    type: str = "control"


class FooterLayout(CamelModel):
    height: int = 60
    background_color: str = "#2C3E50"
    elements: List[Element] = Field(default_factory=list)


class ScreenLayout(CamelModel):
    header: HeaderLayout = Field(default_factory=HeaderLayout)
    main_area: MainArea = Field(default_factory=MainArea)
    footer: FooterLayout = Field(default_factory=FooterLayout)


class ScreenNavigation(CamelModel):
    from_screens: List[str] = Field(default_factory=list, alias="from")
    to_screens: List[str] = Field(default_factory=list, alias="to")
    breadcrumb: str = ""


class ColorScheme(CamelModel):
    # roles used inside a single 800x600 screen
    background: str = "#34495E"
    header: str = "#2C3E50"
    primary: str = "#3498DB"
    secondary: str = "#95A5A6"
    accent: str = "#E74C3C"
    success: str = "#27AE60"
    warning: str = "#F39C12"
    text: str = "#2C3E50"
    border: str = "#BDC3C7"
    # roles used by the combined layouts
    canvas_background: str = "#F8F9FA"
    header_background: str = "#2C3E50"
    header_text: str = "#ECF0F1"
    header_subtext: str = "#BDC3C7"
    screen_background: str = "#FFFFFF"
    screen_header_bg: str = "#34495E"
    screen_header_text: str = "#FFFFFF"
    button_fill: str = "#ECF0F1"
    button_border: str = "#3498DB"
    table_border: str = "#BDC3C7"
    table_header: str = "#EBF3FD"
    indicator: str = "#27AE60"
    input_border: str = "#3498DB"
    input_fill: str = "#FFFFFF"


class ScreenSpecification(CamelModel):
    screen_title: str
    screen_purpose: str = ""
    navigation: ScreenNavigation = Field(default_factory=ScreenNavigation)
    layout: ScreenLayout = Field(default_factory=ScreenLayout)
    color_scheme: ColorScheme = Field(default_factory=ColorScheme)
    elements: List[Element] = Field(default_factory=list)
    functional_description: str = ""
    recommendations: List[str] = Field(default_factory=list)
    source: Literal["model", "fallback"] = "model"


# --------------------------------------------
# Generation results
# --------------------------------------------
class ScreenImage(CamelModel):
    screen_name: str
    screen_id: str
    screen_type: Literal["individual", "workflow_comprehensive", "comprehensive"] = "individual"
    screen_purpose: str = ""
    image_path: Optional[str] = None
    image_url: Optional[str] = None
    specification: Optional[ScreenSpecification] = None
    error: Optional[str] = None


class GenerationSummary(CamelModel):
    total_screens: int
    individual_screens: int
    successful_screens: int
    failed_screens: int
    layout_types: List[str] = Field(default_factory=list)
    generated_at: str
    status: Literal["completed", "partial_success", "error", "cancelled"] = "completed"
    layout_type: str = "enhanced_multi_format"


class GenerationResult(CamelModel):
    screen_analysis: ScreenIdentification
    workflow_diagram: WorkflowDiagram
    screen_images: List[ScreenImage] = Field(default_factory=list)
    summary: GenerationSummary


# --------------------------------------------
# API payloads
# --------------------------------------------
class WorkflowStageResponse(CamelModel):
    success: bool = True
    message: str
    data: WorkflowDiagram
    session_id: str
    step: int = 1
    next_step: str = "generate-screens"


class GenerateScreensRequest(CamelModel):
    session_id: str


class ScreensStageResponse(CamelModel):
    success: bool = True
    message: str
    data: GenerationResult
    session_id: str
    step: int = 2
    next_step: str = "complete"


class HMIResponse(CamelModel):
    success: bool = True
    message: str
    data: GenerationResult


class ProgressEvent(CamelModel):
    step: str
    message: str
    timestamp: str


class ProgressResponse(CamelModel):
    session_id: str
    status: str
    events: List[ProgressEvent] = Field(default_factory=list)


class HealthResponse(CamelModel):
    status: str = "OK"
    message: str = "HMI Agent API is running"
    timestamp: str
    llm_model: str
    has_llm_credentials: bool
