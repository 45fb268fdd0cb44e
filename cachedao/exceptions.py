"""Exception hierarchy for the DAO layer.

- ServiceNotFound: registry lookup for an unregistered (type, mode)
- PersistenceError: a relational write/delete statement failed
- UndefinedFieldError: load-time validation found undeclared fields
- SearchError: the search service rejected or failed a request
"""


class DaoError(RuntimeError):
    pass


class ServiceNotFound(DaoError):
    """Raised when no service is registered for a (type, mode) pair."""

    def __init__(self, service_type: str, mode: str = ""):
        self.service_type = service_type
        self.mode = mode
        super().__init__(f'Service of type "{service_type}{mode}" not found')


class PersistenceError(DaoError):
    """Raised when the relational backend fails to execute a statement.

    `detail` holds the driver's error message.
    """

    def __init__(self, message: str, detail: str = ""):
        self.detail = detail
        super().__init__(f"{message}: {detail}" if detail else message)


class UndefinedFieldError(DaoError):
    def __init__(self, model_name: str, fields: list[str]):
        self.model_name = model_name
        self.fields = fields
        super().__init__(f'Undefined fields {fields} for model "{model_name}"')


class SearchError(DaoError):
    pass
