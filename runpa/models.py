from typing import Any, Dict

from sqlalchemy.orm import declarative_base, Mapped, mapped_column
from sqlalchemy import BigInteger, Float, String

Base = declarative_base()


class Athlete(Base):
    __tablename__ = "athletes"
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)  # Strava athlete id
    firstname: Mapped[str | None] = mapped_column(String, nullable=True)
    lastname: Mapped[str | None] = mapped_column(String, nullable=True)
    city: Mapped[str | None] = mapped_column(String, nullable=True)
    state: Mapped[str | None] = mapped_column(String, nullable=True)
    country: Mapped[str | None] = mapped_column(String, nullable=True)
    profile: Mapped[str | None] = mapped_column(String, nullable=True)  # URL de la foto
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    # derivado de la última actividad con coordenadas, no es dato de Strava
    last_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        # sin email: el resumen por atleta es público
        return {
            "id": self.id,
            "firstname": self.firstname,
            "lastname": self.lastname,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "profile": self.profile,
        }


class Activity(Base):
    __tablename__ = "activities"
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)  # Strava activity id
    # copia del atleta en el momento de la ingesta, no es FK
    athlete_id: Mapped[int] = mapped_column(BigInteger, index=True)
    athlete_firstname: Mapped[str | None] = mapped_column(String, nullable=True)
    athlete_lastname: Mapped[str | None] = mapped_column(String, nullable=True)

    name: Mapped[str | None] = mapped_column(String, nullable=True)
    type: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    start_date: Mapped[str | None] = mapped_column(String, nullable=True, index=True)  # ISO tal cual llega

    distance: Mapped[float | None] = mapped_column(Float, nullable=True)  # metros
    moving_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    elapsed_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    total_elevation_gain: Mapped[float | None] = mapped_column(Float, nullable=True)

    start_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    start_lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    location_city: Mapped[str | None] = mapped_column(String, nullable=True)
    location_state: Mapped[str | None] = mapped_column(String, nullable=True)
    location_country: Mapped[str | None] = mapped_column(String, nullable=True)

    @property
    def location(self) -> Dict[str, Any]:
        return {
            "city": self.location_city,
            "state": self.location_state,
            "country": self.location_country,
        }

    @property
    def start_latlng(self) -> list[float] | None:
        if self.start_lat is None or self.start_lng is None:
            return None
        return [self.start_lat, self.start_lng]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "start_date": self.start_date,
            "distance": self.distance,
            "moving_time": self.moving_time,
            "elapsed_time": self.elapsed_time,
            "total_elevation_gain": self.total_elevation_gain,
            "start_latlng": self.start_latlng,
            "athlete": {
                "id": self.athlete_id,
                "firstname": self.athlete_firstname,
                "lastname": self.athlete_lastname,
            },
            "location": self.location,
        }
