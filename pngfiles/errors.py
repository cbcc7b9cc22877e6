"""
Every exception pngfiles raises on a bad image or a bad request is a
subclass of PngFilesException. I/O errors of the underlying streams are
never wrapped.
"""


class PngFilesException(Exception):
    """
    Base class for all exceptions thrown by pngfiles.
    """
    def __init__(self, message=None):
        super().__init__(message)


class NotAPng(PngFilesException):
    pass


class InvalidChunk(PngFilesException):
    pass


class TruncatedChunk(PngFilesException):
    pass


class UnexpectedEof(PngFilesException):
    pass


class CrcMismatch(PngFilesException):
    pass


class MalformedCarrier(PngFilesException):
    pass


class NamedFileException(PngFilesException):
    """
    Errors about one embedded file; ``name`` is the file that triggered it.
    """
    def __init__(self, name, message):
        super().__init__(message)
        self.name = name


class FragmentError(NamedFileException):
    pass


class IncompleteFile(FragmentError):
    pass


class DuplicateFragment(FragmentError):
    pass


class FileNotFound(NamedFileException):
    def __init__(self, name, message=None):
        super().__init__(name, message or f"Key {name} not found in image")


class NameCollision(NamedFileException):
    def __init__(self, name, message=None):
        super().__init__(name, message or f"Key {name} already in use")
