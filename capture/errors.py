class RoundTripError(Exception):
    pass


class SetupError(RoundTripError):
    """Suite-fatal: port busy, browser launch or bundle compilation failed."""


class ScenarioError(RoundTripError):
    """Failure local to one scenario; the suite carries on."""


class NavigationTimeout(ScenarioError):
    pass


class EvaluationError(ScenarioError):
    pass


class SerializationError(ScenarioError):
    pass


class CheckFailed(ScenarioError):
    pass


class GoldenMismatch(ScenarioError):
    def __init__(self, title, diff):
        super().__init__(diff)
        self.title = title
        self.diff = diff
