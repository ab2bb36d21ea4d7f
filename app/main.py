from dotenv import load_dotenv

load_dotenv()

from server import server  # noqa: E402  settings are read at import time

server_app = server.handler
