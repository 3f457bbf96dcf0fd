import os


class Config:
    SECRET_KEY = os.environ.get('FAIRTIX_SECRET_KEY', 'fairtix_secret_key')
    SQLALCHEMY_DATABASE_URI = os.environ.get('FAIRTIX_DATABASE_URI', 'sqlite:///ledger.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get('FAIRTIX_LOG_LEVEL', 'INFO')

    # Roles the default Authority treats as administrators.
    ADMIN_ROLES = ('admin',)

    # Seed account created by `flask --app fairtix init-db`.
    ADMIN_USERNAME = os.environ.get('FAIRTIX_ADMIN_USERNAME', 'admin')
    ADMIN_PASSWORD = os.environ.get('FAIRTIX_ADMIN_PASSWORD', 'admin123')
    ADMIN_WALLET = "0xADMIN_ROOT_AUTHORITY"

    # Public ledger page size.
    LEDGER_LIMIT = 50
