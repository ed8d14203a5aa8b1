from django.contrib import admin
from .models import ApprovalToken, Contract, ContractActivity, ContractTemplate, TemplateVersion


@admin.register(ContractTemplate)
class ContractTemplateAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'version', 'approval_status', 'is_published')
    list_filter = ('category', 'approval_status', 'is_published')
    search_fields = ('name', 'description', 'contract_type')


@admin.register(TemplateVersion)
class TemplateVersionAdmin(admin.ModelAdmin):
    list_display = ('template', 'version', 'created_at')
    search_fields = ('name',)


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ('reference_number', 'first_party_name_en', 'second_party_name_en', 'status', 'created_at')
    list_filter = ('status', 'language')
    search_fields = ('reference_number', 'first_party_name_en', 'second_party_name_en', 'promoter_name_en')


@admin.register(ApprovalToken)
class ApprovalTokenAdmin(admin.ModelAdmin):
    list_display = ('contract', 'party_role', 'party_email', 'expires_at', 'used')
    list_filter = ('party_role', 'used')


@admin.register(ContractActivity)
class ContractActivityAdmin(admin.ModelAdmin):
    list_display = ('contract', 'action', 'performed_by', 'created_at')
    list_filter = ('action',)
