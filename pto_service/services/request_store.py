"""
Request Store.

Filtered reads and single-row writes over `pto_requests`. Writes commit
immediately; callers run every check before calling insert/update.
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from pto_service.models.leave_request import LeaveRequest
from pto_service.services.base import BaseService


class RequestStore(BaseService):

    def insert(self, request: LeaveRequest) -> LeaveRequest:
        self.db.add(request)
        self.commit("insert_request")
        self.db.refresh(request)
        return request

    def get_by_id(self, request_id: int) -> Optional[LeaveRequest]:
        with self.store_errors("get_request"):
            return self.db.get(LeaveRequest, request_id)

    def update(self, request_id: int, patch: Dict[str, Any]) -> Optional[LeaveRequest]:
        request = self.get_by_id(request_id)
        if not request:
            return None
        for field, value in patch.items():
            setattr(request, field, value)
        self.commit("update_request")
        self.db.refresh(request)
        return request

    def query_by_user(
        self,
        user_id: int,
        statuses: Optional[Iterable[str]] = None,
        limit: Optional[int] = None
    ) -> List[LeaveRequest]:
        with self.store_errors("query_by_user"):
            query = self.db.query(LeaveRequest).filter(LeaveRequest.user_id == user_id)
            if statuses:
                query = query.filter(LeaveRequest.status.in_(list(statuses)))
            query = query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
            if limit:
                query = query.limit(limit)
            return query.all()

    def query_overlapping(
        self,
        user_id: int,
        start: date,
        end: date,
        statuses: Iterable[str]
    ) -> List[LeaveRequest]:
        with self.store_errors("query_overlapping"):
            return self.db.query(LeaveRequest).filter(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status.in_(list(statuses)),
                LeaveRequest.start_date <= end,
                LeaveRequest.end_date >= start
            ).order_by(LeaveRequest.start_date.asc()).all()

    def query_by_approver(self, approver_id: int, status: str) -> List[LeaveRequest]:
        with self.store_errors("query_by_approver"):
            return self.db.query(LeaveRequest).filter(
                LeaveRequest.approver_id == approver_id,
                LeaveRequest.status == status
            ).order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    def query_by_status(self, status: str) -> List[LeaveRequest]:
        with self.store_errors("query_by_status"):
            return self.db.query(LeaveRequest).filter(
                LeaveRequest.status == status
            ).order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    def query_by_date(self, day: date, status: str) -> List[LeaveRequest]:
        """Requests in the given status that start on the given day."""
        with self.store_errors("query_by_date"):
            return self.db.query(LeaveRequest).filter(
                LeaveRequest.start_date == day,
                LeaveRequest.status == status
            ).order_by(LeaveRequest.id.asc()).all()

    def list_all(self, status: Optional[str] = None) -> List[LeaveRequest]:
        with self.store_errors("list_requests"):
            query = self.db.query(LeaveRequest)
            if status:
                query = query.filter(LeaveRequest.status == status)
            return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()
