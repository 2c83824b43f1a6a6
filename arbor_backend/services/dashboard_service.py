"""Read-only aggregates for the home dashboard."""
import logging
from sqlalchemy import select, func, distinct, and_, String, cast
from sqlalchemy.exc import SQLAlchemyError
from ..models import db, TreeRecord
from .result import ServiceResult
from arbor_shared.enums import ErrorKind
from arbor_shared.schemas import (
    DashboardResponse, DashboardStats, RecentRecord, MapPoint, ActivityBucket
)

logger = logging.getLogger(__name__)

RECENT_RECORDS_LIMIT = 5
MAP_POINTS_LIMIT = 50
ACTIVITY_MONTHS = 6
UNIDENTIFIED_NAME = 'Sem identificação'
DEFAULT_MAP_LABEL = 'Árvore'


def _non_empty(column):
    return and_(column.isnot(None), column != '')


class DashboardService:
    """Counts, latest records, map pins and monthly activity."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def get_dashboard(self):
        try:
            data = DashboardResponse(
                stats=self._stats(),
                recent_records=self._recent_records(),
                map_points=self._map_points(),
                recent_activity=self._monthly_activity(),
            )
        except SQLAlchemyError as e:
            logger.error(f"Dashboard error: {e}", exc_info=True)
            return ServiceResult.fail('Failed to load dashboard', ErrorKind.STORE)
        return ServiceResult.ok('Dashboard data retrieved', data)

    def _stats(self):
        total, cities, states = self.session.execute(
            select(
                func.count(),
                func.count(distinct(TreeRecord.cidade)).filter(_non_empty(TreeRecord.cidade)),
                func.count(distinct(TreeRecord.estado)).filter(_non_empty(TreeRecord.estado)),
            ).select_from(TreeRecord)
        ).one()
        return DashboardStats(total_trees=total, total_cities=cities, total_states=states)

    def _recent_records(self):
        rows = self.session.execute(
            select(
                TreeRecord.unique_id, TreeRecord.nome_popular,
                TreeRecord.nome_cientifico, TreeRecord.data_cadastro,
            )
            .order_by(TreeRecord.data_cadastro.desc(), TreeRecord.sequence_id.desc())
            .limit(RECENT_RECORDS_LIMIT)
        ).all()
        return [
            RecentRecord(
                unique_id=row.unique_id,
                nome_popular=row.nome_popular or UNIDENTIFIED_NAME,
                nome_cientifico=row.nome_cientifico or '',
                data_cadastro=row.data_cadastro,
            )
            for row in rows
        ]

    def _map_points(self):
        rows = self.session.execute(
            select(
                TreeRecord.unique_id, TreeRecord.latitude,
                TreeRecord.longitude, TreeRecord.nome_popular,
            )
            .where(_non_empty(TreeRecord.latitude), _non_empty(TreeRecord.longitude))
            .order_by(TreeRecord.data_cadastro.desc(), TreeRecord.sequence_id.desc())
            .limit(MAP_POINTS_LIMIT)
        ).all()
        return [
            MapPoint(
                unique_id=row.unique_id,
                latitude=row.latitude,
                longitude=row.longitude,
                nome_popular=row.nome_popular or DEFAULT_MAP_LABEL,
            )
            for row in rows
        ]

    def _monthly_activity(self):
        """Creation counts for the latest months, oldest first for charting."""
        # Stored timestamps render as 'YYYY-MM-DD ...' on both SQLite and PostgreSQL
        month = func.substr(cast(TreeRecord.data_cadastro, String), 1, 7).label('month')
        rows = self.session.execute(
            select(month, func.count().label('count'))
            .group_by(month)
            .order_by(month.desc())
            .limit(ACTIVITY_MONTHS)
        ).all()
        buckets = [ActivityBucket(label=row.month, value=int(row.count)) for row in rows]
        buckets.reverse()
        return buckets
