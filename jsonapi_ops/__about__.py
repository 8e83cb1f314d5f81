__version__ = "0.1.0"
__description__ = "JSON:API Atomic Operations for Flask-SQLAlchemy models"
