"""AI engine: natural-language explanation of a reputation score."""

from backend_passport.ai_engine.explainer import (
    Explainer,
    Explanation,
    RemoteExplainer,
    RuleBasedExplainer,
    build_explainer,
)

__all__ = ["Explainer", "Explanation", "RemoteExplainer", "RuleBasedExplainer", "build_explainer"]
