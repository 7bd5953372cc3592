"""Apply LLM-generated change-set documents to a repository."""

__version__ = '0.1.0'
