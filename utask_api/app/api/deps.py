"""FastAPI dependency injection: app.state holds the store and settings; Depends() resolves them.

No external DI container.  The lifespan in ``main.py`` creates the
``Database`` once and attaches it to ``app.state``; these getters build
the per-request service objects around it.
"""

from typing import Annotated, Any, Dict

from fastapi import Depends

from ..core.config import Settings
from ..core.db import Database, get_db
from ..core.security import get_current_user, get_settings
from ..services.category_service import CategoryService
from ..services.notification_service import NotificationService
from ..services.proposal_service import ProposalService
from ..services.service_request_service import ServiceRequestService
from ..services.user_service import UserService
from ..services.wallet_service import WalletService


DbDep = Annotated[Database, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
CurrentUser = Annotated[Dict[str, Any], Depends(get_current_user)]


def get_user_service(db: DbDep) -> UserService:
    return UserService(db)


def get_category_service(db: DbDep) -> CategoryService:
    return CategoryService(db)


def get_service_request_service(db: DbDep, settings: SettingsDep) -> ServiceRequestService:
    return ServiceRequestService(db, nearby_max_results=settings.nearby_max_results)


def get_proposal_service(db: DbDep) -> ProposalService:
    return ProposalService(db)


def get_notification_service(db: DbDep) -> NotificationService:
    return NotificationService(db)


def get_wallet_service(db: DbDep) -> WalletService:
    return WalletService(db)


# Type aliases for route injection
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]
ServiceRequestServiceDep = Annotated[ServiceRequestService, Depends(get_service_request_service)]
ProposalServiceDep = Annotated[ProposalService, Depends(get_proposal_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
WalletServiceDep = Annotated[WalletService, Depends(get_wallet_service)]
