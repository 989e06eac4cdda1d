"""
Domain exceptions for the completion engine and analyzer runs.

ConfigurationError is raised while building catalogs and registries (startup).
ValidationError and DuplicateInFlightError come only from the run lifecycle
manager. ExecutorError wraps anything an analyzer executor hits.
ProjectNotFoundError comes from the project store (routes map it to 404).
"""


class FoundationError(Exception):
    """Base class for all brand foundation errors."""


class ConfigurationError(FoundationError):
    """A bucket, field or analyzer declaration is missing or malformed."""


class ValidationError(FoundationError):
    """An analyzer run transition was requested from the wrong state."""

    def __init__(self, message, run_id=None, status=None):
        self.run_id = run_id
        self.status = status
        super().__init__(message)


class RunNotFoundError(ValidationError):
    """The referenced analyzer run does not exist."""

    def __init__(self, run_id):
        super().__init__(f"Analyzer run '{run_id}' not found", run_id=run_id)


class DuplicateInFlightError(FoundationError):
    """A pending or running run already exists for (project, analyzer type)."""

    def __init__(self, project_id, analyzer_type):
        self.project_id = project_id
        self.analyzer_type = analyzer_type
        super().__init__(
            f"Analyzer '{analyzer_type}' already in flight for project {project_id}"
        )


class ExecutorError(FoundationError):
    """An analyzer executor failed (network, LLM or parsing)."""

    def __init__(self, analyzer_type, message):
        self.analyzer_type = analyzer_type
        super().__init__(f"{analyzer_type}: {message}")


class ProjectNotFoundError(FoundationError):
    """The referenced project does not exist."""

    def __init__(self, project_id):
        self.project_id = project_id
        super().__init__(f"Project '{project_id}' not found")
