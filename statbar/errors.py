from typing import Optional


class AnalysisError(RuntimeError):
    """Whole-analysis failure. `hint` names the likely misconfiguration for the user."""

    hint = ""

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        super().__init__(message)
        if hint is not None:
            self.hint = hint

    def user_message(self) -> str:
        msg = str(self)
        if self.hint:
            return "{} ({})".format(msg, self.hint)
        return msg


class FrameNotDetected(AnalysisError):
    hint = "check that the screenshot contains the whole stat panel and that border_color / frame_mode match the UI skin"


class AxisCalibrationFailed(AnalysisError):
    hint = "check zero_line_color / full_line_color and the rail_start_ratio / rail_end_ratio of the profile"

    def __init__(self, message: str, zero_x: Optional[int] = None, full_x: Optional[int] = None) -> None:
        super().__init__(message)
        self.zero_x = zero_x
        self.full_x = full_x


class BarRowsUndetermined(AnalysisError):
    hint = "check the bar fill colors and row_match_distance, or use row_strategy=\"ratio\""

    def __init__(self, found: int, total: int) -> None:
        super().__init__("Could not determine bar rows: found {}/{}".format(int(found), int(total)))
        self.found = int(found)
        self.total = int(total)
