"""
Data access per entity.

Services talk to these repositories instead of querying the session
directly, so every transaction boundary stays an explicit `commit()` /
`rollback()` in the service that owns the operation. Repositories never
commit on their own, with the single exception of
`BookingRepository.ensure_day_lock`, which must exist before the booking
transaction starts.
"""
from datetime import date, time
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from courtqueue.models.court import Court
from courtqueue.models.court_availability import CourtAvailability
from courtqueue.models.court_booking import BOOKING_CONFIRMED, BookingDayLock, CourtBooking
from courtqueue.models.queue_entry import ENTRY_PLAYING, ENTRY_WAITING, QueueEntry
from courtqueue.models.queue_match import MATCH_ACTIVE, MATCH_COMPLETED, QueueMatch, QueueMatchPlayer
from courtqueue.models.queue_session import QueueSession


class CourtRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, court_id: int) -> Optional[Court]:
        return self.session.get(Court, court_id)

    def add(self, court: Court) -> Court:
        self.session.add(court)
        return court

    def list_for_owner(self, owner_id: int, playable_only: bool = False) -> List[Court]:
        query = select(Court).where(Court.owner_id == owner_id)
        if playable_only:
            query = query.where((col(Court.is_active).is_(None)) | (col(Court.is_active).is_(True)))
        return list(self.session.exec(query.order_by(Court.id)).all())

    def list_playable(self) -> List[Court]:
        """Every court accepting play, across all owners."""
        return list(
            self.session.exec(
                select(Court)
                .where((col(Court.is_active).is_(None)) | (col(Court.is_active).is_(True)))
                .order_by(Court.id)
            ).all()
        )


class AvailabilityRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, availability_id: int) -> Optional[CourtAvailability]:
        return self.session.get(CourtAvailability, availability_id)

    def add(self, availability: CourtAvailability) -> CourtAvailability:
        self.session.add(availability)
        return availability

    def delete(self, availability: CourtAvailability) -> None:
        self.session.delete(availability)

    def for_day(self, court_id: int, day_of_week: int) -> Optional[CourtAvailability]:
        return self.session.exec(
            select(CourtAvailability).where(
                CourtAvailability.court_id == court_id,
                CourtAvailability.day_of_week == day_of_week,
            )
        ).first()

    def covering(self, court_id: int, day_of_week: int, start: time, end: time) -> Optional[CourtAvailability]:
        """Availability row whose window contains [start, end), if any."""
        return self.session.exec(
            select(CourtAvailability).where(
                CourtAvailability.court_id == court_id,
                CourtAvailability.day_of_week == day_of_week,
                CourtAvailability.open_time <= start,
                CourtAvailability.close_time >= end,
            )
        ).first()

    def list_for_court(self, court_id: int) -> List[CourtAvailability]:
        return list(
            self.session.exec(
                select(CourtAvailability)
                .where(CourtAvailability.court_id == court_id)
                .order_by(CourtAvailability.day_of_week)
            ).all()
        )


class BookingRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, booking_id: int) -> Optional[CourtBooking]:
        return self.session.get(CourtBooking, booking_id)

    def add(self, booking: CourtBooking) -> CourtBooking:
        self.session.add(booking)
        return booking

    def confirmed_for_day(self, court_id: int, day: date) -> List[CourtBooking]:
        return list(
            self.session.exec(
                select(CourtBooking)
                .where(
                    CourtBooking.court_id == court_id,
                    CourtBooking.day_date == day,
                    CourtBooking.status == BOOKING_CONFIRMED,
                )
                .order_by(CourtBooking.start_time)
            ).all()
        )

    def first_overlapping(self, court_id: int, day: date, start: time, end: time) -> Optional[CourtBooking]:
        """First confirmed booking whose [start, end) overlaps the given range."""
        return self.session.exec(
            select(CourtBooking)
            .where(
                CourtBooking.court_id == court_id,
                CourtBooking.day_date == day,
                CourtBooking.status == BOOKING_CONFIRMED,
                CourtBooking.start_time < end,
                CourtBooking.end_time > start,
            )
            .order_by(CourtBooking.start_time)
        ).first()

    def list_for_court(self, court_id: int, day: Optional[date] = None) -> List[CourtBooking]:
        query = select(CourtBooking).where(
            CourtBooking.court_id == court_id,
            CourtBooking.status == BOOKING_CONFIRMED,
        )
        if day is not None:
            query = query.where(CourtBooking.day_date == day)
        return list(self.session.exec(query.order_by(CourtBooking.day_date, CourtBooking.start_time)).all())

    def list_for_user(
        self,
        user_id: int,
        status: Optional[str] = None,
        from_day: Optional[date] = None,
    ) -> List[CourtBooking]:
        query = select(CourtBooking).where(CourtBooking.user_id == user_id)
        if status is not None:
            query = query.where(CourtBooking.status == status)
        if from_day is not None:
            query = query.where(CourtBooking.day_date >= from_day)
        return list(
            self.session.exec(
                query.order_by(col(CourtBooking.day_date).desc(), col(CourtBooking.start_time).desc())
            ).all()
        )

    def list_for_courts(
        self,
        court_ids: Sequence[int],
        status: Optional[str] = None,
        day: Optional[date] = None,
        from_day: Optional[date] = None,
    ) -> List[CourtBooking]:
        ids = list(court_ids)
        if not ids:
            return []
        query = select(CourtBooking).where(col(CourtBooking.court_id).in_(ids))
        if status is not None:
            query = query.where(CourtBooking.status == status)
        if day is not None:
            query = query.where(CourtBooking.day_date == day)
        if from_day is not None:
            query = query.where(CourtBooking.day_date >= from_day)
        return list(
            self.session.exec(
                query.order_by(col(CourtBooking.day_date).desc(), col(CourtBooking.start_time).desc())
            ).all()
        )

    def ensure_day_lock(self, court_id: int, day: date) -> None:
        """Create the (court, day) lock row if missing. Commits on its own."""
        exists = self.session.exec(
            select(BookingDayLock.id).where(
                BookingDayLock.court_id == court_id,
                BookingDayLock.day_date == day,
            )
        ).first()
        if exists is not None:
            return
        self.session.add(BookingDayLock(court_id=court_id, day_date=day))
        try:
            self.session.commit()
        except IntegrityError:
            # Created by a concurrent request in the meantime
            self.session.rollback()

    def lock_day(self, court_id: int, day: date) -> None:
        """Write the lock row; held until the surrounding transaction ends."""
        self.session.execute(
            update(BookingDayLock)
            .where(
                BookingDayLock.court_id == court_id,
                BookingDayLock.day_date == day,
            )
            .values(version=BookingDayLock.version + 1)
        )


class QueueSessionRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, session_id: int) -> Optional[QueueSession]:
        return self.session.get(QueueSession, session_id)

    def add(self, queue_session: QueueSession) -> QueueSession:
        self.session.add(queue_session)
        return queue_session

    def list_sessions(self, owner_id: Optional[int] = None) -> List[QueueSession]:
        query = select(QueueSession)
        if owner_id is not None:
            query = query.where(QueueSession.owner_id == owner_id)
        return list(
            self.session.exec(
                query.order_by(col(QueueSession.day_date).desc(), col(QueueSession.start_time).desc())
            ).all()
        )


class QueueEntryRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, entry_id: int) -> Optional[QueueEntry]:
        return self.session.get(QueueEntry, entry_id)

    def add(self, entry: QueueEntry) -> QueueEntry:
        self.session.add(entry)
        return entry

    def delete(self, entry: QueueEntry) -> None:
        self.session.delete(entry)

    def list_for_session(self, session_id: int) -> List[QueueEntry]:
        return list(
            self.session.exec(
                select(QueueEntry)
                .where(QueueEntry.session_id == session_id)
                .order_by(QueueEntry.joined_at, QueueEntry.id)
            ).all()
        )

    def waiting_by_priority(self, session_id: int) -> List[QueueEntry]:
        """Waiting entries, fewest games first, then earliest arrival."""
        return list(
            self.session.exec(
                select(QueueEntry)
                .where(
                    QueueEntry.session_id == session_id,
                    QueueEntry.status == ENTRY_WAITING,
                )
                .order_by(QueueEntry.games_played, QueueEntry.joined_at, QueueEntry.id)
            ).all()
        )

    def in_session(self, session_id: int, entry_ids: Iterable[int]) -> List[QueueEntry]:
        ids = list(entry_ids)
        return list(
            self.session.exec(
                select(QueueEntry).where(
                    QueueEntry.session_id == session_id,
                    col(QueueEntry.id).in_(ids),
                )
            ).all()
        )

    def mark_playing(self, session_id: int, entry_ids: Sequence[int]) -> int:
        """Move waiting entries to playing; returns how many actually moved."""
        result = self.session.execute(
            update(QueueEntry)
            .where(
                QueueEntry.session_id == session_id,
                col(QueueEntry.id).in_(list(entry_ids)),
                QueueEntry.status == ENTRY_WAITING,
            )
            .values(status=ENTRY_PLAYING)
        )
        return result.rowcount

    def finish_game(self, entry_ids: Sequence[int]) -> int:
        """Count one more game and put the entries back in line."""
        result = self.session.execute(
            update(QueueEntry)
            .where(col(QueueEntry.id).in_(list(entry_ids)))
            .values(games_played=QueueEntry.games_played + 1, status=ENTRY_WAITING)
        )
        return result.rowcount


class QueueMatchRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, match_id: int) -> Optional[QueueMatch]:
        return self.session.get(QueueMatch, match_id)

    def add(self, match: QueueMatch) -> QueueMatch:
        self.session.add(match)
        return match

    def add_player(self, player: QueueMatchPlayer) -> QueueMatchPlayer:
        self.session.add(player)
        return player

    def active_for_court(self, session_id: int, court_id: int) -> Optional[QueueMatch]:
        return self.session.exec(
            select(QueueMatch).where(
                QueueMatch.session_id == session_id,
                QueueMatch.court_id == court_id,
                QueueMatch.status == MATCH_ACTIVE,
            )
        ).first()

    def active_for_session(self, session_id: int) -> List[QueueMatch]:
        return list(
            self.session.exec(
                select(QueueMatch)
                .where(
                    QueueMatch.session_id == session_id,
                    QueueMatch.status == MATCH_ACTIVE,
                )
                .order_by(QueueMatch.court_id)
            ).all()
        )

    def busy_court_ids(self, session_id: int) -> List[int]:
        return list(
            self.session.exec(
                select(QueueMatch.court_id).where(
                    QueueMatch.session_id == session_id,
                    QueueMatch.status == MATCH_ACTIVE,
                )
            ).all()
        )

    def completed_count(self, session_id: int) -> int:
        return self.session.exec(
            select(func.count(QueueMatch.id)).where(
                QueueMatch.session_id == session_id,
                QueueMatch.status == MATCH_COMPLETED,
            )
        ).one()

    def players(self, match_id: int) -> List[QueueMatchPlayer]:
        return list(
            self.session.exec(
                select(QueueMatchPlayer)
                .where(QueueMatchPlayer.match_id == match_id)
                .order_by(QueueMatchPlayer.team, QueueMatchPlayer.id)
            ).all()
        )

    def players_for_entry(self, entry_id: int) -> List[QueueMatchPlayer]:
        return list(
            self.session.exec(
                select(QueueMatchPlayer).where(QueueMatchPlayer.queue_entry_id == entry_id)
            ).all()
        )

    def close(self, match_id: int, ended_at, shuttlecocks_used: Optional[int]) -> int:
        """Flip an active match to completed; 0 when it was not active."""
        result = self.session.execute(
            update(QueueMatch)
            .where(
                QueueMatch.id == match_id,
                QueueMatch.status == MATCH_ACTIVE,
            )
            .values(status=MATCH_COMPLETED, end_time=ended_at, shuttlecocks_used=shuttlecocks_used)
        )
        return result.rowcount
