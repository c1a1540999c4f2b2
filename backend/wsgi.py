import logging

from hideseek.config import Config
from hideseek.server import create_app

logging.basicConfig(level=getattr(logging, Config.LOG_LEVEL, logging.INFO))

app, socketio = create_app()
