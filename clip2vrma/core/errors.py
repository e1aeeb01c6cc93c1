"""Errors raised by the export pipeline."""


class VrmaExportError(Exception):
    """Base class for export failures."""


class MissingRootBone(VrmaExportError):
    """The avatar has no transform mapped to the hips bone."""

    def __init__(self, avatar_name: str):
        self.avatar_name = avatar_name
        super().__init__(f"Avatar '{avatar_name}' has no hips bone; cannot export animation")
