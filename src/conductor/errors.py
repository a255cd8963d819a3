"""Shared error types for the coordination core."""


class ConductorError(Exception):
    """Base error for all coordination-layer failures."""


class NotFoundError(ConductorError):
    """A referenced agent, team, or workflow does not exist."""

    kind = "Resource"

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"{self.kind} not found: {identifier}")


class AgentNotFoundError(NotFoundError):
    kind = "Agent"


class TeamNotFoundError(NotFoundError):
    kind = "Team"


class WorkflowNotFoundError(NotFoundError):
    kind = "Workflow"


class BackendFailureError(ConductorError):
    """An execution backend raised, disconnected, or reported an error."""

    def __init__(self, runtime: str, detail: str = "") -> None:
        self.runtime = runtime
        self.detail = detail
        super().__init__(detail or f"Backend failure: {runtime}")


class UnknownRuntimeError(BackendFailureError):
    """No execution backend is registered for the requested runtime."""

    def __init__(self, runtime: str) -> None:
        super().__init__(runtime, f"No execution backend registered for runtime: {runtime}")


class StepTimeoutError(ConductorError):
    """A workflow step exceeded its deadline."""

    def __init__(self, step_id: str, timeout: float) -> None:
        self.step_id = step_id
        self.timeout = timeout
        super().__init__(f"Step {step_id} timed out after {timeout}s")
