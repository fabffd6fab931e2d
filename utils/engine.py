from flask import current_app

from scheduling import SchedulingEngine

EXTENSION_KEY = "scheduling_engine"

def get_engine() -> SchedulingEngine:
    return current_app.extensions[EXTENSION_KEY]
