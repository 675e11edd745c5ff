from graficontrol.business.company.api import router
from graficontrol.business.company.models import Company
from graficontrol.business.company.schemas import CompanyAccessUpdate, CompanyCreate, CompanyRead
from graficontrol.business.company.service import CompanyService, company_service

__all__ = [
    "router",
    "Company",
    "CompanyAccessUpdate",
    "CompanyCreate",
    "CompanyRead",
    "CompanyService",
    "company_service",
]
