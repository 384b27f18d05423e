from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    pass

# Register the models on Base.metadata (create_all in tests, autogenerate in Alembic)
from fieldschema.models import *  # noqa
