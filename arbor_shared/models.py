from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime, Index, JSON, TypeDecorator
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def now():
    """Return current datetime in UTC (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value):
    """Attach UTC to naive datetimes read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime column stored as naive UTC and loaded as timezone-aware UTC.

    SQLite drops timezone info on write, so values are normalized to UTC before
    they are stored and tagged with UTC again when they are loaded.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return as_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        return as_utc(value)


# Descriptive and geo attributes of a tree record, in the order the mobile form
# presents them. The core passes these through without interpreting them.
TREE_TEXT_FIELDS = (
    'latitude', 'longitude', 'quadra', 'numero_arvore', 'cidade', 'estado',
    'cep', 'bairro', 'rua_praca', 'numero_casa', 'nome_popular',
    'nome_cientifico', 'altura', 'cap', 'calcada_largura',
    'calcada_faixa_livre', 'estacionamento', 'detalhamento', 'parasitas',
    'altura_copa_acima_210', 'condicao_fitossanitaria', 'poda_atual',
    'tratamento', 'probabilidade', 'impacto', 'area_permeavel_maior_1m2',
)
TREE_LIST_FIELDS = ('presenca_de', 'conflitos', 'photos')
TREE_DESCRIPTIVE_FIELDS = TREE_TEXT_FIELDS + TREE_LIST_FIELDS


class User(Base):
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True, nullable=False)
    username = Column(String(50), unique=True, nullable=False)
    password_hash = Column(String(256), nullable=False)
    email = Column(String(120), unique=True, nullable=False)
    full_name = Column(String(200), nullable=False, server_default="")
    is_admin = Column(Boolean, default=False, nullable=False, server_default='0')
    last_login = Column(UTCDateTime)
    created_at = Column(UTCDateTime, default=now)


class TreeRecord(Base):
    __tablename__ = 'tree_records'
    unique_id = Column(String(100), primary_key=True, nullable=False)
    sequence_id = Column(Integer, unique=True, nullable=False)

    # Snapshot of the actor who last wrote the record, not a foreign key
    user_id = Column(String(50), nullable=False, index=True)
    user_name = Column(String(200), server_default="")
    user_email = Column(String(120), server_default="")

    data_cadastro = Column(UTCDateTime, nullable=False, default=now)
    data_edit = Column(UTCDateTime, nullable=False, default=now)

    latitude = Column(String(50))
    longitude = Column(String(50))
    quadra = Column(String(100))
    numero_arvore = Column(String(100))
    cidade = Column(String(200))
    estado = Column(String(100))
    cep = Column(String(20))
    bairro = Column(String(200))
    rua_praca = Column(String(300))
    numero_casa = Column(String(50))
    nome_popular = Column(String(200))
    nome_cientifico = Column(String(200))
    altura = Column(String(50))
    cap = Column(String(50))
    calcada_largura = Column(String(50))
    calcada_faixa_livre = Column(String(50))
    estacionamento = Column(String(100))
    detalhamento = Column(Text)
    parasitas = Column(String(200))
    altura_copa_acima_210 = Column(String(50))
    condicao_fitossanitaria = Column(String(100))
    poda_atual = Column(String(100))
    tratamento = Column(String(200))
    probabilidade = Column(String(50))
    impacto = Column(String(50))
    area_permeavel_maior_1m2 = Column(String(50))
    presenca_de = Column(JSON)
    conflitos = Column(JSON)
    photos = Column(JSON)

Index('idx_tree_data_cadastro', TreeRecord.data_cadastro)
Index('idx_tree_cidade', TreeRecord.cidade)


class SequenceCounter(Base):
    """Named monotonic counters incremented atomically by the record store."""
    __tablename__ = 'sequence_counters'
    name = Column(String(50), primary_key=True, nullable=False)
    value = Column(Integer, nullable=False, default=0, server_default="0")
