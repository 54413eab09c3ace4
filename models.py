from sqlalchemy import Column, Integer, String
from sqlmodel import SQLModel, Field
from typing import Optional


class Submission(SQLModel, table=True):
    __tablename__ = "submissions"

    id: Optional[int] = Field(default=None, primary_key=True)
    full_name: str = Field(sa_column=Column("fullName", String))
    phone: str
    email: str = Field(index=True)
    description: str
    # document variant
    birth_certificate: Optional[str] = Field(default=None, sa_column=Column("birthCertificate", String))
    result_slip: Optional[str] = Field(default=None, sa_column=Column("resultSlip", String))
    # KUCCPS variant
    index_number: Optional[str] = Field(default=None, sa_column=Column("indexNumber", String))
    kcse_year: Optional[int] = Field(default=None, sa_column=Column("kcseYear", Integer))
    birth_cert_number: Optional[str] = Field(default=None, sa_column=Column("birthCertNumber", String))
    primary_index_number: Optional[str] = Field(default=None, sa_column=Column("primaryIndexNumber", String))
    # "YYYY-MM-DD HH:MM:SS" at UTC+3
    timestamp: str = Field(index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "description": self.description,
            "birthCertificate": self.birth_certificate,
            "resultSlip": self.result_slip,
            "indexNumber": self.index_number,
            "kcseYear": self.kcse_year,
            "birthCertNumber": self.birth_cert_number,
            "primaryIndexNumber": self.primary_index_number,
            "timestamp": self.timestamp,
        }


class BlockedUser(SQLModel, table=True):
    __tablename__ = "blocked_users"

    email: str = Field(primary_key=True)
