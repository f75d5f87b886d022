from __future__ import annotations
import datetime as dt
from sqlalchemy import (
    String, Integer, Float, DateTime, Boolean, Text, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column
from .db import Base
from .session import utcnow

class QuestionRow(Base):
    __tablename__ = "questions"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    content_id: Mapped[str] = mapped_column(String(64), index=True)
    order_index: Mapped[int] = mapped_column(Integer, default=0)
    kind: Mapped[str] = mapped_column(String(32))                   # QuestionKind value
    prompt: Mapped[str] = mapped_column(Text)
    options_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON list (choice kinds)
    correct_answer: Mapped[str] = mapped_column(Text)
    explanation: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    __table_args__ = (Index("ix_questions_content_order", "content_id", "order_index"),)

class LearningSessionRow(Base):
    __tablename__ = "learning_sessions"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    content_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    # snapshot of the question list; sessions never see later content edits
    questions_json: Mapped[str] = mapped_column(Text)
    total_questions: Mapped[int] = mapped_column(Integer)
    current_index: Mapped[int] = mapped_column(Integer, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0)
    total_score: Mapped[float] = mapped_column(Float, default=0.0)
    total_time_seconds: Mapped[float] = mapped_column(Float, default=0.0)
    status: Mapped[str] = mapped_column(String(16), default="not_started")  # SessionState value
    started_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    completed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

class QuestionResultRow(Base):
    __tablename__ = "question_results"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(64), ForeignKey("learning_sessions.id"), index=True)
    position: Mapped[int] = mapped_column(Integer)                  # 0-based question index
    question_id: Mapped[str] = mapped_column(String(64))
    user_answer: Mapped[str] = mapped_column(Text)
    time_spent_seconds: Mapped[float] = mapped_column(Float, default=0.0)
    submitted_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)
    method: Mapped[str] = mapped_column(String(16))                 # GradingMethod value
    grading_detail_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    __table_args__ = (UniqueConstraint("session_id", "position", name="uq_result_session_position"),)
