import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


def _flag(name, default='false'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key'
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET') or os.environ.get('JWT_SECRET_KEY') or 'fallbacksecret'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)

    # 32-byte AES key, hex encoded
    ENCRYPT_KEY = os.environ.get('ENCRYPT_KEY') or '123456789012345678901234567890ab' * 2
    DATA_DIR = os.environ.get('DATA_DIR') or './data'
    MEDIA_DIR = os.environ.get('MEDIA_DIR') or './media'

    # plaintext affiliate ledgers keep the files readable for admin tooling
    ENCRYPT_AFFILIATE_RECORDS = _flag('ENCRYPT_AFFILIATE_RECORDS')
    # accept | reject
    ORPHAN_REFERRAL_POLICY = os.environ.get('ORPHAN_REFERRAL_POLICY') or 'accept'

    FRONTEND_URL = os.environ.get('FRONTEND_URL') or 'http://localhost:3000'
    STRIPE_SECRET_KEY = (os.environ.get('STRIPE_SECRET') or os.environ.get('STRIPE_SECRET_KEY') or '').strip()
    EASYPOST_API_KEY = os.environ.get('EASYPOST_API_KEY')

    MAX_CONTENT_LENGTH = 100 * 1024 * 1024
    ALLOWED_MEDIA_EXTENSIONS = {'jpeg', 'jpg', 'png', 'gif', 'webp', 'mp4', 'webm', 'mov'}
    MAX_UPLOAD_FILES = 20

    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'


class TestConfig(Config):
    TESTING = True
    BCRYPT_LOG_ROUNDS = 4
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    ENCRYPT_KEY = '00112233445566778899aabbccddeeff' * 2
    ENCRYPT_AFFILIATE_RECORDS = False
    ORPHAN_REFERRAL_POLICY = 'accept'
    STRIPE_SECRET_KEY = ''
    EASYPOST_API_KEY = None
