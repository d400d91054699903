from typing import List


class RxCompanionError(Exception):
    pass


class RecognitionError(RxCompanionError):
    """The image-to-text engine could not produce text for an image."""


class DraftError(RxCompanionError, ValueError):
    pass


class InvalidTimeError(DraftError):
    def __init__(self, value: str):
        super().__init__(f"Invalid time {value!r}; expected HH:MM (24-hour).")
        self.value = value


class LastTimeRemovalError(DraftError):
    def __init__(self):
        super().__init__("A medication needs at least one reminder time.")


class DraftValidationError(DraftError):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class PersistenceError(RxCompanionError):
    pass


class ReminderSchedulingError(RxCompanionError):
    pass


class NotFoundError(RxCompanionError, KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "not found"
