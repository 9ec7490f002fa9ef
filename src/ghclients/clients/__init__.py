"""Resource clients, one per GitHub REST resource."""

from ghclients.clients.issues import IssueClient
from ghclients.clients.labels import LabelClient
from ghclients.clients.releases import ReleaseClient
from ghclients.clients.tags import TagClient
from ghclients.clients.workflows import WorkflowClient

__all__ = [
    "IssueClient",
    "LabelClient",
    "ReleaseClient",
    "TagClient",
    "WorkflowClient",
]
