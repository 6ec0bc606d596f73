class Error(Exception):
    """Base class for exceptions for this module.
    It is used to recognize errors specific to this module"""

    pass


class FormatError(Error):
    pass


class InvalidPageNumber(Error):
    pass


class InvalidRecord(Error):
    pass


class TruncatedRecordError(InvalidRecord):
    pass


class InvalidSerialType(InvalidRecord):
    pass
