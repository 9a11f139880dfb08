"""Exceptions shared by the post store, the image store and bootstrap."""


class BlogError(Exception):
    pass


class NotFound(BlogError):
    """A post or image that was asked for does not exist."""


class ImageNotFound(NotFound):
    def __init__(self, name: str):
        super().__init__(f"Image not found: {name}")
        self.name = name


class ValidationError(BlogError):
    """A staged post was rejected at commit time."""


class StorageError(BlogError):
    """The backing file or directory could not be read or written."""


class BootstrapError(BlogError):
    pass
