"""Pydantic schemas for validation and serialization.

Wire payloads use the camelCase names the mobile client sends; model fields are
snake_case and match the SQLAlchemy columns so responses can be built straight
from ORM objects.
"""
from datetime import datetime
from typing import Optional, List, Dict, Any, Union
from pydantic import BaseModel, Field, field_validator, ConfigDict


WIRE_CONFIG = ConfigDict(populate_by_name=True, extra='ignore', coerce_numbers_to_str=True)


def format_pydantic_errors(exc):
    """Flatten a Pydantic ValidationError into 'field: message' strings."""
    errors = []
    for error in exc.errors():
        field = '.'.join(str(x) for x in error['loc'])
        errors.append(f"{field}: {error['msg']}")
    return errors


class FieldError(BaseModel):
    field: str
    message: str


def pydantic_field_errors(exc):
    """Convert a Pydantic ValidationError into FieldError entries."""
    return [
        FieldError(field='.'.join(str(x) for x in error['loc']) or 'body', message=error['msg'])
        for error in exc.errors()
    ]


class Actor(BaseModel):
    """Identity of the authenticated caller, as resolved from a bearer token."""
    id: Optional[Union[int, str]] = None
    username: Optional[str] = None
    email: Optional[str] = None
    fullname: Optional[str] = None
    is_admin: bool = Field(default=False, alias='isAdmin')

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @property
    def display_name(self):
        return self.fullname or self.username or ""

    @classmethod
    def coerce(cls, value):
        """Build an Actor from a token claims dict, an ORM user or an Actor."""
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls.model_validate(value)
        return cls.model_validate(value, from_attributes=True)


# Tree Schemas
class TreeFields(BaseModel):
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    quadra: Optional[str] = None
    numero_arvore: Optional[str] = Field(None, alias='numeroArvore')
    cidade: Optional[str] = None
    estado: Optional[str] = None
    cep: Optional[str] = None
    bairro: Optional[str] = None
    rua_praca: Optional[str] = Field(None, alias='ruaPraca')
    numero_casa: Optional[str] = Field(None, alias='numeroCasa')
    nome_popular: Optional[str] = Field(None, alias='nomePopular')
    nome_cientifico: Optional[str] = Field(None, alias='nomeCientifico')
    altura: Optional[str] = None
    cap: Optional[str] = None
    calcada_largura: Optional[str] = Field(None, alias='calcadaLargura')
    calcada_faixa_livre: Optional[str] = Field(None, alias='calcadaFaixaLivre')
    estacionamento: Optional[str] = None
    detalhamento: Optional[str] = None
    parasitas: Optional[str] = None
    altura_copa_acima_210: Optional[str] = Field(None, alias='alturaCopaAcima210')
    condicao_fitossanitaria: Optional[str] = Field(None, alias='condicaoFitossanitaria')
    poda_atual: Optional[str] = Field(None, alias='podaAtual')
    tratamento: Optional[str] = None
    probabilidade: Optional[str] = None
    impacto: Optional[str] = None
    area_permeavel_maior_1m2: Optional[str] = Field(None, alias='areaPermeavelMaior1m2')
    presenca_de: Optional[List[str]] = Field(None, alias='presencaDe')
    conflitos: Optional[List[str]] = None
    photos: Optional[List[str]] = None

    model_config = WIRE_CONFIG

    @field_validator('presenca_de', 'conflitos', mode='before')
    @classmethod
    def wrap_single_value(cls, v):
        # Older app builds send a single string for multi-select answers
        if isinstance(v, str):
            return [v] if v else []
        return v


class TreeSubmission(TreeFields):
    """A tree as submitted by a client, optionally carrying its local id."""
    local_id: Optional[str] = Field(None, alias='localId')

    @field_validator('local_id')
    @classmethod
    def blank_local_id_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class TreeUpdate(TreeFields):
    pass


class TreeRecordResponse(TreeFields):
    unique_id: str = Field(..., alias='uniqueId')
    sequence_id: int = Field(..., alias='id')
    user_id: str = Field(..., alias='userId')
    user_name: Optional[str] = Field(None, alias='userName')
    user_email: Optional[str] = Field(None, alias='userEmail')
    data_cadastro: datetime = Field(..., alias='dataCadastro')
    data_edit: datetime = Field(..., alias='dataEdit')

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


def serialize_tree(record):
    """Serialize a TreeRecord to its camelCase wire representation."""
    return TreeRecordResponse.model_validate(record).model_dump(mode='json', by_alias=True)


class TreeQueryParams(BaseModel):
    user_id: Optional[str] = Field(None, alias='userId')
    cidade: Optional[str] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1)

    model_config = WIRE_CONFIG

    @field_validator('user_id', 'cidade', 'search')
    @classmethod
    def blank_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


# Sync Schemas
class TreeSyncRequest(BaseModel):
    # Items are validated one by one during reconciliation so that a malformed
    # item lands in the errors bucket instead of rejecting the whole batch.
    trees: List[Any]
    device_id: str = Field(..., alias='deviceId', min_length=1)
    last_sync_timestamp: Optional[str] = Field(None, alias='lastSyncTimestamp')

    model_config = WIRE_CONFIG


class SyncSuccessItem(BaseModel):
    local_id: Optional[str] = Field(None, alias='localId')
    id: int
    unique_id: str = Field(..., alias='uniqueId')

    model_config = ConfigDict(populate_by_name=True)


class SyncErrorItem(BaseModel):
    local_id: Optional[str] = Field(None, alias='localId')
    error: str

    model_config = ConfigDict(populate_by_name=True)


class SyncConflictItem(BaseModel):
    local_id: Optional[str] = Field(None, alias='localId')
    reason: str
    server_data: Dict[str, Any] = Field(..., alias='serverData')

    model_config = ConfigDict(populate_by_name=True)


class SyncResults(BaseModel):
    success: List[SyncSuccessItem] = Field(default_factory=list)
    errors: List[SyncErrorItem] = Field(default_factory=list)
    conflicts: List[SyncConflictItem] = Field(default_factory=list)


class TreeSyncResponse(BaseModel):
    success: bool
    results: SyncResults = Field(default_factory=SyncResults)
    server_timestamp: datetime = Field(..., alias='serverTimestamp')

    model_config = ConfigDict(populate_by_name=True)


# Dashboard Schemas
class DashboardStats(BaseModel):
    total_trees: int = Field(..., alias='totalTrees')
    total_cities: int = Field(..., alias='totalCities')
    total_states: int = Field(..., alias='totalStates')

    model_config = ConfigDict(populate_by_name=True)


class RecentRecord(BaseModel):
    unique_id: str = Field(..., alias='uniqueId')
    nome_popular: str = Field(..., alias='nomePopular')
    nome_cientifico: str = Field(..., alias='nomeCientifico')
    data_cadastro: datetime = Field(..., alias='dataCadastro')

    model_config = ConfigDict(populate_by_name=True)


class MapPoint(BaseModel):
    unique_id: str = Field(..., alias='uniqueId')
    latitude: str
    longitude: str
    nome_popular: str = Field(..., alias='nomePopular')

    model_config = ConfigDict(populate_by_name=True)


class ActivityBucket(BaseModel):
    label: str
    value: int


class DashboardResponse(BaseModel):
    stats: DashboardStats
    recent_activity: List[ActivityBucket] = Field(..., alias='recentActivity')
    recent_records: List[RecentRecord] = Field(..., alias='recentRecords')
    map_points: List[MapPoint] = Field(..., alias='mapPoints')

    model_config = ConfigDict(populate_by_name=True)


# Auth Schemas
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8)
    email: str = Field(..., min_length=3, max_length=120)
    full_name: str = Field(..., alias='fullName', min_length=2, max_length=200)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('username', 'email', 'full_name')
    @classmethod
    def strip_text(cls, v):
        return v.strip()


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., alias='refreshToken', min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class PasswordResetRequest(BaseModel):
    username: str = Field(..., min_length=1)
    new_password: str = Field(..., alias='newPassword', min_length=8)
    confirm_new_password: str = Field(..., alias='confirmNewPassword', min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    full_name: str = Field(..., alias='fullName')
    is_admin: bool = Field(..., alias='isAdmin')
    last_login: Optional[datetime] = Field(None, alias='lastLogin')
    created_at: Optional[datetime] = Field(None, alias='createdAt')

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


def serialize_user(user):
    """Serialize a User without its password hash."""
    return UserResponse.model_validate(user).model_dump(mode='json', by_alias=True)


class UserUpdateRequest(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[str] = Field(None, min_length=3, max_length=120)
    full_name: Optional[str] = Field(None, alias='fullName', min_length=2, max_length=200)
    is_admin: Optional[bool] = Field(None, alias='isAdmin')
    password: Optional[str] = Field(None, min_length=8)

    model_config = ConfigDict(populate_by_name=True)
