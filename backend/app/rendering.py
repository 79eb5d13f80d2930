"""
Wayfarer Backend — Template Environment
=========================================

What:  The shared Jinja2Templates instance for server-rendered pages.
Who:   The view routes and the HTML branch of the error translation layer.
"""

from fastapi.templating import Jinja2Templates

from app.config import settings

templates = Jinja2Templates(directory=settings.templates_dir)
