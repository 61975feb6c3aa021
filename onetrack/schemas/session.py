# onetrack/schemas/session.py
import uuid
from typing import Literal

from sqlmodel import SQLModel


class MenuEntryRead(SQLModel):
    name: str
    href: str


class SessionRead(SQLModel):
    """
    Client-side session view: who is logged in and what the UI shows.

    This is a UI convenience. It never authorizes anything.
    """

    user_id: uuid.UUID
    email: str | None
    role: str
    home: str
    menu: list[MenuEntryRead]


class GuardDecisionRead(SQLModel):
    path: str
    decision: Literal["loading", "allowed", "redirected"]
    redirect_to: str | None = None
