# create_tables.py
from app.config.settings import settings
from app.database import Base, SessionLocal, engine
from app.models import Task, TaskComment, User, UserRole
from app.utils.security import hash_password

def create_tables():
    """Create all tables"""
    try:
        Base.metadata.create_all(bind=engine)
        print("✅ All tables created successfully!")

        # Create default admin user
        create_default_admin()

    except Exception as e:
        print(f"❌ Error creating tables: {e}")
        raise

def create_default_admin():
    """Create the bootstrap admin account if no admin exists yet"""
    db = SessionLocal()
    try:
        existing_admin = db.query(User).filter(User.role == UserRole.ADMIN.value).first()
        if existing_admin:
            print(f"ℹ️  Admin already exists: {existing_admin.email}")
            return

        admin = User(
            name="Administrator",
            email=settings.DEFAULT_ADMIN_EMAIL,
            hashed_password=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
            role=UserRole.ADMIN.value,
            department="Management",
            position="Administrator",
            is_active=True,
        )
        db.add(admin)
        db.commit()
        print(f"✅ Default admin created: {settings.DEFAULT_ADMIN_EMAIL}")
    finally:
        db.close()

if __name__ == "__main__":
    create_tables()
