"""Exceptions raised inside the learning engine."""


class WordMasterError(Exception):
    """Base class for all engine errors."""


class LoadError(WordMasterError):
    """Vocabulary content could not be read or contained no usable rows."""


class PersistenceError(WordMasterError):
    """The durable key-value store failed to read or write a value."""


class PredicateError(WordMasterError):
    """An achievement requirement referenced aggregate data that is missing."""
