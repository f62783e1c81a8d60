from app.crud.audit_log import audit_log
from app.crud.iam import role_crud, page_crud
