"""
Django admin registrations.

Lets superusers inspect patients, sessions and monitoring readings at
``/admin/`` while debugging the ward board.
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import AuditEvent, MonitoringRecord, Patient, Session, Slot, Staff, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'role', 'is_active', 'is_staff', 'is_superuser')
    list_filter = ('role', 'is_active')
    fieldsets = BaseUserAdmin.fieldsets + (('Clinic', {'fields': ('role',)}),)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'mrn', 'name', 'hd_cycle', 'access_type', 'is_active')
    list_filter = ('is_active', 'access_type')
    search_fields = ('name', 'mrn', 'contact_number')


@admin.register(Slot)
class SlotAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'start_time', 'end_time', 'bed_capacity')


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'role', 'assigned_slot', 'is_active')
    list_filter = ('role', 'is_active', 'assigned_slot')
    search_fields = ('name', 'contact_number')


class MonitoringInline(admin.TabularInline):
    model = MonitoringRecord
    extra = 0


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'session_date', 'slot', 'bed_number', 'phase', 'is_discharged', 'is_missed')
    list_filter = ('phase', 'is_discharged', 'is_missed', 'slot')
    search_fields = ('patient__name', 'patient__mrn')
    date_hierarchy = 'session_date'
    inlines = [MonitoringInline]


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action',)
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
