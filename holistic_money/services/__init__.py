"""Domain services behind the HTTP routers."""

from .access import AccessPolicy, AllowAllPolicy, GrantTablePolicy, build_access_policy
from .clients_service import ClientsService, derive_comments_table_name
from .comments_service import CommentsService, project_latest
from .financial_service import FinancialReportService, build_report, parse_month
from .scheduler import SyncScheduler
from .sync_service import CommentSyncService, SyncReport
from .users_service import UserService

__all__ = [
    "AccessPolicy",
    "AllowAllPolicy",
    "ClientsService",
    "CommentSyncService",
    "CommentsService",
    "FinancialReportService",
    "GrantTablePolicy",
    "SyncReport",
    "SyncScheduler",
    "UserService",
    "build_access_policy",
    "build_report",
    "derive_comments_table_name",
    "parse_month",
    "project_latest",
]
