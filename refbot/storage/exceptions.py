class StorageError(Exception):
    pass


class DuplicateUserError(StorageError):
    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"User with {field}={value!r} already exists")
