"""Policy sources feeding the permission store."""

from .document import PolicyDocument, PolicyFile, load_policy_document
from .source import PolicyFileSource

__all__ = [
    "PolicyDocument",
    "PolicyFile",
    "PolicyFileSource",
    "load_policy_document",
]
