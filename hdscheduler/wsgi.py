"""
WSGI config for the HD scheduler project.

It exposes the WSGI callable as a module-level variable named ``application``.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'hdscheduler.settings')

application = get_wsgi_application()
