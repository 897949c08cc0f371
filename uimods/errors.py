class PatchError(Exception):
    """Base for failures raised by the backup/patch core."""


class NotFoundError(PatchError):
    pass


class InvalidInputError(PatchError):
    pass
