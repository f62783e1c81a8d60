from app.crud.iam.role import role_crud
from app.crud.iam.page import page_crud
