from graficontrol.business.quotes.api import router
from graficontrol.business.quotes.models import Quote
from graficontrol.business.quotes.service import QuoteService, quote_service

__all__ = ["router", "Quote", "QuoteService", "quote_service"]
