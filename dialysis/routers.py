"""
URL mappings for the HD scheduler API.

Paths match the ward front-end's endpoint table, so trailing slashes are
deliberately omitted.  Session routes are registered under both
``hdschedule`` and ``HDSchedule``.
"""
from django.urls import path, include

from .auth_views import login_view, jwt_refresh_view, jwt_logout_view
from .views import health, missed, patients, phases, schedule, sessions, staff


def _session_routes(prefix):
    return [
        path(f'api/{prefix}', sessions.sessions),
        path(f'api/{prefix}/history', sessions.session_history),
        path(f'api/{prefix}/<int:session_id>', sessions.session_detail),
        path(f'api/{prefix}/<int:session_id>/phase-status', phases.phase_status),
        path(f'api/{prefix}/<int:session_id>/pre-dialysis', phases.pre_dialysis),
        path(f'api/{prefix}/<int:session_id>/complete-pre-dialysis', phases.complete_pre_dialysis),
        path(f'api/{prefix}/<int:session_id>/start-post-dialysis', phases.start_post_dialysis),
        path(f'api/{prefix}/<int:session_id>/post-dialysis', phases.post_dialysis),
        path(f'api/{prefix}/<int:session_id>/complete-post-dialysis', phases.complete_post_dialysis),
        path(f'api/{prefix}/<int:session_id>/monitoring', phases.monitoring),
    ]


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', login_view),
    path('api/auth/refresh', jwt_refresh_view),
    path('api/auth/logout', jwt_logout_view),
    # Schedule board
    path('api/schedule/slots', schedule.slots),
    path('api/schedule/daily', schedule.daily_schedule),
    path('api/schedule/availability', schedule.bed_availability),
    path('api/schedule/beds/check', schedule.check_bed),
    path('api/schedule/move-to-history', schedule.move_to_history),
    # Missed appointments
    path('api/MissedAppointment', missed.missed_list),
    path('api/MissedAppointment/mark', missed.mark_missed),
    path('api/MissedAppointment/resolve', missed.resolve_missed),
    path('api/MissedAppointment/possible-no-shows', missed.possible_no_shows),
    # Patients
    path('api/patients', patients.patients),
    path('api/patients/<int:patient_id>', patients.patient_detail),
    # Ward roster and shift staffing
    path('api/staff', staff.staff_list),
    path('api/staff/<int:staff_id>', staff.staff_detail),
    path('api/staff/<int:staff_id>/assign-slot', staff.assign_slot),
    path('api/staff/<int:staff_id>/toggle-status', staff.toggle_status),
    path('api/staffing-status', staff.staffing_status),
    path('api/staffing-status/<int:slot_id>', staff.slot_staffing_status),
]
# Sessions
urlpatterns += _session_routes('hdschedule') + _session_routes('HDSchedule')
