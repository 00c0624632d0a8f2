class InvalidIdentifier(ValueError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name


class EmptyIdentifier(InvalidIdentifier):
    def __str__(self) -> str:
        return f"{self.name} must not be empty"


class IdentifierTooLong(InvalidIdentifier):
    def __init__(self, name: str, length: int, limit: int) -> None:
        super().__init__(name)
        self.length = length
        self.limit = limit

    def __str__(self) -> str:
        return (
            f"{self.name} must be at most {self.limit} characters,"
            f" got {self.length}"
        )


class ConnectionInterrupted(Exception):
    def __init__(self, connection, parent=None):
        self.connection = connection

    def __str__(self) -> str:
        error_type = type(self.__cause__).__name__
        error_msg = str(self.__cause__)
        return f"Redis {error_type}: {error_msg}"
