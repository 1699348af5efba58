# Base.metadata에 모든 테이블 등록
from app.models.user import User, Role  # noqa: F401
from app.models.wallet import WalletTransaction, TransactionType, Direction  # noqa: F401
from app.models.admin_log import AdminActionLog, AdminAction  # noqa: F401
