from src.api.server import run

run()
