"""
API schema definitions for the Math Solver & 3D Surface API.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Tuple


class ErrorResponse(BaseModel):
    """Uniform error envelope returned by every endpoint."""
    success: bool = Field(False, description="Always false for errors")
    error: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Error category: validation or server")
    details: Optional[Any] = Field(None, description="Additional detail (omitted in production for server errors)")
    timestamp: str = Field(..., description="ISO-8601 UTC time of the failure")


# --- /api/math ---

class ExpressionRequest(BaseModel):
    """Request model for solving or validating an expression."""
    expression: Optional[str] = Field(
        None, description="Expression or command, e.g. derivative(x^2, x)"
    )


class SolveStep(BaseModel):
    """Individual step in the narrated solution."""
    step: int = Field(..., description="1-based step number")
    description: str = Field(..., description="Short title of the step")
    expression: str = Field(..., description="Expression produced by this step")
    explanation: str = Field(..., description="Human-readable explanation of the step")


class SolveResponse(BaseModel):
    """Response model for /api/math/solve."""
    success: bool = Field(..., description="Whether solving was successful")
    steps: List[SolveStep] = Field(default=[], description="Step-by-step solution")
    finalAnswer: str = Field("", description="Final answer")
    type: str = Field(..., description="Operation that handled the expression")
    inputExpression: str = Field(..., description="Expression as received")
    detectedType: str = Field(..., description="Operation detected by the classifier")
    latex: Optional[str] = Field(None, description="Final answer in LaTeX")
    mathml: Optional[str] = Field(None, description="Final answer in presentation MathML")
    error: Optional[str] = Field(None, description="Error message if solving failed")


class ValidateExpressionResponse(BaseModel):
    valid: bool
    error: Optional[str] = None
    type: Optional[str] = None


class ExamplesResponse(BaseModel):
    success: bool
    examples: Dict[str, List[str]]


# --- /api/plot3d ---

class Domain(BaseModel):
    """Rectangular sampling domain."""
    x: Tuple[float, float] = Field((-5.0, 5.0), description="[xMin, xMax]")
    y: Tuple[float, float] = Field((-5.0, 5.0), description="[yMin, yMax]")


class EvaluateRequest(BaseModel):
    """Request model for evaluating z = f(x, y) at one point."""
    equation: Optional[str] = Field(None, description="Expression in x and y")
    x: Any = Field(None, description="x coordinate")
    y: Any = Field(None, description="y coordinate")
    parameters: Dict[str, float] = Field(default_factory=dict, description="Named parameter values")


class SurfaceRequest(BaseModel):
    """Request model for generating a surface mesh."""
    equation: Optional[str] = Field(None, description="Expression in x and y")
    domain: Optional[Domain] = Field(None, description="Sampling domain")
    resolution: Optional[int] = Field(None, description="Quads per side, clamped to [10, 100]")
    parameters: Dict[str, float] = Field(default_factory=dict, description="Named parameter values")


class SurfaceExpressionRequest(BaseModel):
    """Request model for validating or analyzing a surface expression."""
    equation: Optional[str] = Field(None, description="Expression in x and y")
    domain: Optional[Domain] = Field(None, description="Domain used by analysis")
    parameters: Dict[str, float] = Field(default_factory=dict, description="Named parameter values")


class PointData(BaseModel):
    x: float
    y: float
    z: float
    equation: str
    parameters: Dict[str, float]


class SurfaceBounds(BaseModel):
    x: Tuple[float, float]
    y: Tuple[float, float]
    z: Tuple[Optional[float], Optional[float]]


class SurfaceStatistics(BaseModel):
    totalPoints: int
    validPoints: int
    invalidPoints: int
    computationTime: float
    resolution: int


class SurfaceData(BaseModel):
    vertices: List[float]
    indices: List[int]
    bounds: SurfaceBounds
    statistics: SurfaceStatistics


class ValidationData(BaseModel):
    isValid: bool
    variables: List[str]
    functions: List[str]
    warnings: List[str]
    suggestions: List[str]
    error: Optional[str] = None


class CriticalPoint(BaseModel):
    x: float
    y: float
    z: float
    kind: str


class AnalysisData(BaseModel):
    type: str
    symmetry: str
    extrema: List[CriticalPoint]
    domain: Dict[str, Tuple[float, float]]
    range: Dict[str, Tuple[Optional[float], Optional[float]]]


class Preset(BaseModel):
    id: str
    name: str
    equation: str
    description: str
    domain: Domain
    parameters: Dict[str, float]
    category: str


class PlotStats(BaseModel):
    totalRequests: int
    averageComputationTime: float
    mostPopularFunctions: List[str]
    errorRate: float
    lastUpdated: str


class PointResponse(BaseModel):
    success: bool
    data: PointData
    metadata: Dict[str, Any]


class SurfaceResponse(BaseModel):
    success: bool
    data: SurfaceData
    metadata: Dict[str, Any]


class ValidationResponse(BaseModel):
    success: bool
    data: ValidationData
    metadata: Dict[str, Any]


class AnalysisResponse(BaseModel):
    success: bool
    data: AnalysisData
    metadata: Dict[str, Any]


class PresetsResponse(BaseModel):
    success: bool
    data: List[Preset]
    metadata: Dict[str, Any]


class StatsResponse(BaseModel):
    success: bool
    data: PlotStats
    metadata: Dict[str, Any]


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""
    status: str
    message: str
    services: Dict[str, str]
