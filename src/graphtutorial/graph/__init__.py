"""Microsoft Graph API client module.

Provides:
- GraphClient: HTTP client with retry logic and error handling
- MailManager, DriveManager, UserManager: per-resource operations
- GraphService: the façade the demo application talks to

Usage:
    from graphtutorial.graph import GraphService

    graph = GraphService(settings)
    graph.initialize_for_user_auth()
    print(graph.get_user()["displayName"])
"""

from graphtutorial.graph.client import GraphClient, GraphPage
from graphtutorial.graph.drive import DriveManager
from graphtutorial.graph.mail import MailManager
from graphtutorial.graph.service import GraphService
from graphtutorial.graph.users import UserManager

__all__ = [
    "DriveManager",
    "GraphClient",
    "GraphPage",
    "GraphService",
    "MailManager",
    "UserManager",
]
