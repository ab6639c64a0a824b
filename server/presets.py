"""
Static example expressions and 3D surface presets served by the API.
"""

SOLVER_EXAMPLES = {
    "basic": (
        "2 + 3 * 4",
        "x^2 + 2*x + 1",
        "(x + 1)^2 - (x - 1)^2",
        "sqrt(16) + 2^3",
    ),
    "calculus": (
        "derivative(x^3 + 2*x^2, x)",
        "derivative(sin(x)^2, x)",
        "integral(x^2, x)",
        "integral(x, x, 0, 2)",
        "limit(x, 0, sin(x)/x)",
    ),
    "algebra": (
        "solve(x^2 - 4, x)",
        "solve(2*x + 3 = 7, x)",
        "x^2 - 5*x + 6 = 0",
    ),
}

SURFACE_PRESETS = (
    {
        "id": "paraboloid",
        "name": "Paraboloid",
        "equation": "x^2 + y^2",
        "description": "Classic 3D paraboloid surface",
        "domain": {"x": (-3, 3), "y": (-3, 3)},
        "parameters": {},
        "category": "quadratic",
    },
    {
        "id": "hyperbolic-paraboloid",
        "name": "Hyperbolic Paraboloid",
        "equation": "x^2 - y^2",
        "description": "Saddle-shaped surface",
        "domain": {"x": (-3, 3), "y": (-3, 3)},
        "parameters": {},
        "category": "quadratic",
    },
    {
        "id": "sphere",
        "name": "Sphere",
        "equation": "sqrt(4 - x^2 - y^2)",
        "description": "Upper hemisphere",
        "domain": {"x": (-1.8, 1.8), "y": (-1.8, 1.8)},
        "parameters": {},
        "category": "geometric",
    },
    {
        "id": "sine-wave",
        "name": "Sine Wave Surface",
        "equation": "sin(sqrt(x^2 + y^2))",
        "description": "Radial sine wave pattern",
        "domain": {"x": (-6, 6), "y": (-6, 6)},
        "parameters": {},
        "category": "trigonometric",
    },
    {
        "id": "exponential",
        "name": "Exponential Surface",
        "equation": "exp(-(x^2 + y^2)/4)",
        "description": "Gaussian-like exponential surface",
        "domain": {"x": (-4, 4), "y": (-4, 4)},
        "parameters": {},
        "category": "exponential",
    },
    {
        "id": "ripple",
        "name": "Ripple Surface",
        "equation": "sin(x) * cos(y)",
        "description": "Intersecting sine and cosine waves",
        "domain": {"x": (-4, 4), "y": (-4, 4)},
        "parameters": {},
        "category": "trigonometric",
    },
    {
        "id": "parametric",
        "name": "Parametric Surface",
        "equation": "a*x^2 + b*y^2 + c*x*y",
        "description": "Customizable quadratic surface",
        "domain": {"x": (-3, 3), "y": (-3, 3)},
        "parameters": {"a": 1, "b": 1, "c": 0},
        "category": "parametric",
    },
    {
        "id": "mountain",
        "name": "Mountain Range",
        "equation": "sin(x/2) * cos(y/2) + 0.5*sin(x) * sin(y)",
        "description": "Complex mountainous terrain",
        "domain": {"x": (-6, 6), "y": (-6, 6)},
        "parameters": {},
        "category": "complex",
    },
)


def preset_categories():
    categories = []
    for preset in SURFACE_PRESETS:
        if preset["category"] not in categories:
            categories.append(preset["category"])
    return categories
