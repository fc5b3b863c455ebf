"""Failures raised inside the analysis pipeline.

None of these reach the UI: the AnalysisClient converts them into fallback
results.
"""


class SkillChainError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(SkillChainError):
    """The Gemini credential is missing or empty."""


class TransportError(SkillChainError):
    """The remote call failed: network error, timeout, non-2xx or empty answer."""


class ContractViolation(SkillChainError):
    """The model answered, but not with JSON matching the response schema."""

    def __init__(self, message: str, path: str = "$"):
        super().__init__(f"{path}: {message}")
        self.path = path
