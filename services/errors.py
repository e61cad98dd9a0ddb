class HabitError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HabitError):
    """Malformed request body or path parameter."""

    status_code = 400


class NotFoundError(HabitError):
    status_code = 404

    def __init__(self, habit_id: int):
        super().__init__(f"habit {habit_id} not found")
        self.habit_id = habit_id


class PersistenceError(HabitError):
    """The database refused a query or could not be reached."""

    status_code = 500
