from graficontrol.business.financial.api import router
from graficontrol.business.financial.models import FinancialTransaction, TransactionType
from graficontrol.business.financial.service import FinancialService, financial_service

__all__ = [
    "router",
    "FinancialTransaction",
    "TransactionType",
    "FinancialService",
    "financial_service",
]
