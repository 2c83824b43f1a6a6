from flask_sqlalchemy import SQLAlchemy
from arbor_shared.models import Base, User, TreeRecord, SequenceCounter, now

db = SQLAlchemy(model_class=Base)
