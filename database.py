import logging
from datetime import datetime, timedelta

import bcrypt
from sqlalchemy import create_engine, Column, Integer, String, DateTime, Numeric, Boolean, ForeignKey
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import (
    DEFAULT_CURRENCY,
    DEFAULT_PROFESSIONAL_BUDGET_PERCENT,
    DEFAULT_VAT_PERCENT,
    get_database_url,
)

logger = logging.getLogger(__name__)

# Database setup
DATABASE_URL = get_database_url()
if DATABASE_URL.startswith('sqlite'):
    # Local development and tests; one shared connection for in-memory databases
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
else:
    # Handle SSL and connection pooling for PostgreSQL
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        pool_recycle=300,
        connect_args={"sslmode": "prefer"}
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
Base = declarative_base()

Money = Numeric(10, 2, asdecimal=False)
Percent = Numeric(5, 2, asdecimal=False)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    vat_percent = Column(Percent, default=DEFAULT_VAT_PERCENT)
    professional_budget_percent = Column(Percent, default=DEFAULT_PROFESSIONAL_BUDGET_PERCENT)
    created_at = Column(DateTime, default=datetime.utcnow)


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    token = Column(String, unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class ProfitScenario(Base):
    __tablename__ = "profit_scenarios"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    product_name = Column(String, nullable=False)
    rrp = Column(Money, nullable=False)
    vat_registered = Column(Boolean, default=False)
    vat_percent = Column(Percent, default=DEFAULT_VAT_PERCENT)
    list_price = Column(Money, nullable=False)
    discount = Column(Percent, default=0)
    retro_discount = Column(Percent, default=0)
    usage = Column(Percent, default=0)
    commission = Column(Money, default=0)
    currency = Column(String, default=DEFAULT_CURRENCY)
    created_at = Column(DateTime, default=datetime.utcnow)


class RetailBudget(Base):
    __tablename__ = "retail_budgets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    net_sales = Column(Money, nullable=False)
    budget_percent = Column(Percent, nullable=False)
    currency = Column(String, default=DEFAULT_CURRENCY)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    @property
    def revenue_base(self):
        return self.net_sales


class RetailSupplier(Base):
    __tablename__ = "retail_suppliers"

    id = Column(Integer, primary_key=True, index=True)
    budget_id = Column(Integer, ForeignKey("retail_budgets.id"), index=True)
    name = Column(String, nullable=False)
    allocation = Column(Money, nullable=False)


class ProfessionalBudget(Base):
    __tablename__ = "professional_budgets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    net_services = Column(Money, nullable=False)
    budget_percent = Column(Percent, nullable=False)
    currency = Column(String, default=DEFAULT_CURRENCY)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    @property
    def revenue_base(self):
        return self.net_services


class ProfessionalSupplier(Base):
    __tablename__ = "professional_suppliers"

    id = Column(Integer, primary_key=True, index=True)
    budget_id = Column(Integer, ForeignKey("professional_budgets.id"), index=True)
    name = Column(String, nullable=False)
    allocation = Column(Money, nullable=False)


# kind -> (budget model, supplier model, revenue column)
BUDGET_MODELS = {
    'retail': (RetailBudget, RetailSupplier, 'net_sales'),
    'professional': (ProfessionalBudget, ProfessionalSupplier, 'net_services'),
}

# Create tables
Base.metadata.create_all(bind=engine)


def get_db_session():
    """Get a database session for direct use"""
    return SessionLocal()


def hash_password(password: str) -> str:
    """Hash a password for storing"""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against hash"""
    return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))


def create_user(username: str, email: str, password: str):
    """Create a new user"""
    db = get_db_session()

    try:
        if db.query(User).filter(User.username == username).first():
            return None, "Username already exists"
        if db.query(User).filter(User.email == email).first():
            return None, "Email already exists"

        user = User(
            username=username,
            email=email,
            hashed_password=hash_password(password)
        )

        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Registered user %s", user.id)

        return user, "Registration successful! You can now sign in to your account."

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error creating user %s", username)
        return None, f"Error creating user: {str(e)}"
    finally:
        db.close()


def authenticate_user(username: str, password: str):
    """Authenticate a user"""
    db = get_db_session()

    try:
        user = db.query(User).filter(User.username == username).first()

        if not user or not verify_password(password, user.hashed_password):
            return None

        return user
    finally:
        db.close()


def get_user(user_id: int):
    db = get_db_session()
    try:
        return db.get(User, user_id)
    finally:
        db.close()


def get_user_by_email(email: str):
    db = get_db_session()
    try:
        return db.query(User).filter(User.email == email).first()
    finally:
        db.close()


def update_user_password(user_id: int, password: str) -> bool:
    """Store a new password hash for a user"""
    db = get_db_session()
    try:
        user = db.get(User, user_id)
        if not user:
            return False
        user.hashed_password = hash_password(password)
        db.commit()
        return True
    finally:
        db.close()


def update_user_preferences(user_id: int, vat_percent=None, professional_budget_percent=None) -> bool:
    """Update the user's default VAT and professional budget percentages"""
    db = get_db_session()
    try:
        user = db.get(User, user_id)
        if not user:
            return False
        if vat_percent is not None:
            user.vat_percent = vat_percent
        if professional_budget_percent is not None:
            user.professional_budget_percent = professional_budget_percent
        db.commit()
        return True
    finally:
        db.close()


def create_password_reset_token(user_id: int, token: str, ttl_minutes: int = 60):
    db = get_db_session()
    try:
        reset_token = PasswordResetToken(
            user_id=user_id,
            token=token,
            expires_at=datetime.utcnow() + timedelta(minutes=ttl_minutes)
        )
        db.add(reset_token)
        db.commit()
        db.refresh(reset_token)
        return reset_token
    finally:
        db.close()


def get_password_reset_token(token: str):
    db = get_db_session()
    try:
        return db.query(PasswordResetToken).filter(PasswordResetToken.token == token).first()
    finally:
        db.close()


def delete_password_reset_token(token_id: int):
    db = get_db_session()
    try:
        db.query(PasswordResetToken).filter(PasswordResetToken.id == token_id).delete()
        db.commit()
    finally:
        db.close()


def get_profit_scenarios(user_id: int):
    """All scenarios for a user, newest first"""
    db = get_db_session()
    try:
        return db.query(ProfitScenario).filter(
            ProfitScenario.user_id == user_id
        ).order_by(ProfitScenario.created_at.desc(), ProfitScenario.id.desc()).all()
    finally:
        db.close()


def create_profit_scenario(user_id: int, scenario):
    """Save a scenario's raw inputs for a user"""
    db = get_db_session()

    try:
        record = ProfitScenario(user_id=user_id, **scenario.model_dump())
        db.add(record)
        db.commit()
        db.refresh(record)
        return record, "Scenario saved successfully"
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to save profit scenario for user %s", user_id)
        return None, "Failed to save scenario"
    finally:
        db.close()


def delete_profit_scenario(scenario_id: int, user_id: int) -> bool:
    """Delete a scenario owned by the user"""
    db = get_db_session()
    try:
        scenario = db.query(ProfitScenario).filter(
            ProfitScenario.id == scenario_id,
            ProfitScenario.user_id == user_id
        ).first()

        if scenario:
            db.delete(scenario)
            db.commit()
            return True
        return False
    finally:
        db.close()


def get_latest_budget(user_id: int, kind: str):
    """Current budget and its suppliers, or None if the user never saved one"""
    budget_model, supplier_model, _ = BUDGET_MODELS[kind]
    db = get_db_session()
    try:
        budget = db.query(budget_model).filter(
            budget_model.user_id == user_id
        ).order_by(budget_model.updated_at.desc(), budget_model.id.desc()).first()

        if not budget:
            return None

        suppliers = db.query(supplier_model).filter(
            supplier_model.budget_id == budget.id
        ).order_by(supplier_model.id).all()

        return budget, suppliers
    finally:
        db.close()


def save_budget(user_id: int, kind: str, payload):
    """Replace the user's current budget and its suppliers"""
    budget_model, supplier_model, revenue_column = BUDGET_MODELS[kind]
    db = get_db_session()

    try:
        budget = db.query(budget_model).filter(
            budget_model.user_id == user_id
        ).order_by(budget_model.updated_at.desc(), budget_model.id.desc()).first()

        if budget:
            db.query(supplier_model).filter(supplier_model.budget_id == budget.id).delete()
            budget.updated_at = datetime.utcnow()
        else:
            budget = budget_model(user_id=user_id)
            db.add(budget)

        setattr(budget, revenue_column, payload.revenue_base)
        budget.budget_percent = payload.budget_percent
        budget.currency = payload.currency
        db.flush()

        suppliers = []
        for supplier in payload.suppliers:
            row = supplier_model(budget_id=budget.id, name=supplier.name, allocation=supplier.allocation)
            db.add(row)
            suppliers.append(row)

        db.commit()
        logger.info("Saved %s budget %s for user %s", kind, budget.id, user_id)
        return (budget, suppliers), "Budget saved successfully"
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to save %s budget for user %s", kind, user_id)
        return None, "Failed to save budget"
    finally:
        db.close()
