import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of origins allowed to open sockets / call the API
    ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            'ALLOWED_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173',
        ).split(',')
        if origin.strip()
    ]
    # Socket.IO namespace carrying the multiplayer protocol
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '8000'))
    # Reported by /info; `development` turns on the debug reloader in run.py
    ENVIRONMENT = os.environ.get('APP_ENV', 'development')
    DEBUG = ENVIRONMENT == 'development'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
