"""
SQLAlchemy declarative base.
Model modules import it; db.session.init_db imports the models before create_all.
"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()
