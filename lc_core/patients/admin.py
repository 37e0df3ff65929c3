# lc_core/patients/admin.py
from django.contrib import admin

from lc_core.patients.models import FriendField, FriendFieldValue, Intake, Patient, PatientMark, PatientTag, Tag


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("patient_id", "name", "line_id", "tenant_id", "created_at")
    list_filter = ("tenant_id",)
    search_fields = ("patient_id", "name", "line_id")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("-created_at",)


@admin.register(Intake)
class IntakeAdmin(admin.ModelAdmin):
    list_display = ("patient_id", "patient_name", "tenant_id", "created_at")
    list_filter = ("tenant_id",)
    search_fields = ("patient_id", "patient_name")
    ordering = ("-created_at",)


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ("name", "color", "tenant_id")
    search_fields = ("name",)


@admin.register(PatientTag)
class PatientTagAdmin(admin.ModelAdmin):
    list_display = ("patient_id", "tag", "tenant_id")
    search_fields = ("patient_id",)


@admin.register(PatientMark)
class PatientMarkAdmin(admin.ModelAdmin):
    list_display = ("patient_id", "mark", "tenant_id")
    list_filter = ("mark",)
    search_fields = ("patient_id",)


admin.site.register(FriendField)
admin.site.register(FriendFieldValue)
