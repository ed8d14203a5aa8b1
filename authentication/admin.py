from django.contrib import admin
from .models import User

@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'full_name', 'role', 'tenant_id', 'is_active', 'date_joined')
    search_fields = ('email', 'full_name')
    list_filter = ('role', 'is_active', 'date_joined')
    readonly_fields = ('user_id', 'date_joined', 'updated_at', 'last_login')
