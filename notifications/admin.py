from django.contrib import admin
from .models import Notification, ReadReceipt


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('title', 'user_id', 'type', 'category', 'read', 'important', 'created_at')
    list_filter = ('type', 'category', 'read', 'important')
    search_fields = ('title', 'message')


@admin.register(ReadReceipt)
class ReadReceiptAdmin(admin.ModelAdmin):
    list_display = ('notification', 'user_id', 'created_at')
