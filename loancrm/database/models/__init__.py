from loancrm.database.models.customer_model import Customer
from loancrm.database.models.admin_model import Admin

DOCUMENT_MODELS = [Customer, Admin]
