"""Hemodialysis unit scheduling application.

This package contains the models, services, serializers, views and route
registrations behind the ward front-end: patients, slots and beds,
session phases, missed appointments and the history sweeps.
"""
