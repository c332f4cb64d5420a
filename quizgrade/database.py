from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value):
    """Convert an offset-aware datetime to naive UTC; naive values are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Class(Base):
    __tablename__ = "classes"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    subject = Column(String)
    join_code = Column(String, unique=True, nullable=False)
    teacher_id = Column(String)  # user_id of the owning teacher from the identity provider
    created_at = Column(DateTime, default=utcnow)
    enrollments = relationship("Enrollment", back_populates="class_", cascade="all, delete-orphan")
    quizzes = relationship("Quiz", back_populates="class_", cascade="all, delete-orphan")
    lessons = relationship(
        "Lesson",
        back_populates="class_",
        order_by="Lesson.created_at",
        cascade="all, delete-orphan",
    )


class Student(Base):
    __tablename__ = "students"
    id = Column(Integer, primary_key=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True)
    created_at = Column(DateTime, default=utcnow)
    enrollments = relationship("Enrollment", back_populates="student", cascade="all, delete-orphan")


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("class_id", "student_id", name="uq_enrollment_class_student"),)
    id = Column(Integer, primary_key=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    joined_at = Column(DateTime, default=utcnow)
    class_ = relationship("Class", back_populates="enrollments")
    student = relationship("Student", back_populates="enrollments")


class Quiz(Base):
    __tablename__ = "quizzes"
    id = Column(Integer, primary_key=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    title = Column(String, nullable=False)
    deadline = Column(DateTime)
    grading_scale = Column(JSON)  # registry key or inline scale definition
    passing_grade = Column(Float, default=70)
    created_at = Column(DateTime, default=utcnow)
    class_ = relationship("Class", back_populates="quizzes")
    questions = relationship(
        "Question",
        back_populates="quiz",
        order_by="Question.sort_order",
        cascade="all, delete-orphan",
    )
    results = relationship("QuizResult", back_populates="quiz", cascade="all, delete-orphan")


class Lesson(Base):
    __tablename__ = "lessons"
    id = Column(Integer, primary_key=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    title = Column(String, nullable=False)
    content = Column(Text, default="")
    links = Column(JSON)  # list of http(s) URLs
    created_by = Column(String)
    created_at = Column(DateTime, default=utcnow)
    class_ = relationship("Class", back_populates="lessons")


class Question(Base):
    __tablename__ = "questions"
    id = Column(Integer, primary_key=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False)
    sort_order = Column(Integer, default=0)
    question_type = Column(String)  # multiple-choice, free-text
    text = Column(Text)
    points = Column(Integer, default=1)
    data = Column(JSON)  # options, correct_index, correct_answer
    quiz = relationship("Quiz", back_populates="questions")


class QuizResult(Base):
    __tablename__ = "quiz_results"
    __table_args__ = (UniqueConstraint("student_id", "quiz_id", name="uq_result_student_quiz"),)
    id = Column(Integer, primary_key=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    answers = Column(JSON)
    points_earned = Column(Integer, default=0)
    total_points = Column(Integer, default=0)
    correct_count = Column(Integer, default=0)
    total_questions = Column(Integer, default=0)
    percentage = Column(Integer, default=0)
    quiz_snapshot = Column(JSON)  # questions, scale and passing grade at submission time
    submitted_at = Column(DateTime, default=utcnow)
    quiz = relationship("Quiz", back_populates="results")
    student = relationship("Student")


def get_engine(db_path=None, url=None):
    """Returns a SQLAlchemy engine.

    ``url`` (e.g. from DATABASE_URL) wins over the SQLite file path.
    """
    if url:
        return create_engine(url)
    return create_engine(f"sqlite:///{db_path}")


def init_db(engine):
    """Creates all tables in the database."""
    Base.metadata.create_all(engine)


def get_session(engine):
    """Returns a new session."""
    Session = sessionmaker(bind=engine)
    return Session()
