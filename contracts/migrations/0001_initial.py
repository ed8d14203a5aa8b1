import uuid

import django.db.models.deletion
from django.db import migrations, models


CATEGORY_CHOICES = [
    ('general', 'General'),
    ('employment', 'Employment'),
    ('services', 'Services'),
    ('consulting', 'Consulting'),
    ('legal', 'Legal'),
    ('financial', 'Financial'),
    ('real-estate', 'Real Estate'),
    ('other', 'Other'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ContractTemplate',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tenant_id', models.UUIDField(db_index=True, help_text='Tenant ID for RLS')),
                ('name', models.CharField(help_text='Template name', max_length=255)),
                ('description', models.TextField(blank=True, default='', help_text='Template description')),
                ('contract_type', models.CharField(blank=True, default='', help_text='Type of contract', max_length=100)),
                ('responsibilities', models.TextField(blank=True, default='', help_text='Default promoter responsibilities')),
                ('default_duration', models.PositiveIntegerField(default=30, help_text='Default contract duration in days')),
                ('category', models.CharField(choices=CATEGORY_CHOICES, default='general', max_length=20)),
                ('approval_status', models.CharField(choices=[('draft', 'Draft'), ('pending_approval', 'Pending Approval'), ('approved', 'Approved'), ('rejected', 'Rejected')], db_index=True, default='draft', max_length=20)),
                ('approval_requested_at', models.DateTimeField(blank=True, null=True)),
                ('approval_requested_by', models.UUIDField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('approved_by', models.UUIDField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_by', models.UUIDField(blank=True, null=True)),
                ('approval_comments', models.TextField(blank=True, default='')),
                ('is_published', models.BooleanField(default=False, help_text='Visible to every tenant user')),
                ('version', models.IntegerField(default=1, help_text='Template version number')),
                ('last_modified_by', models.UUIDField(blank=True, null=True)),
                ('predefined_key', models.CharField(blank=True, default='', help_text='Key of the built-in template this row was seeded from', max_length=64)),
                ('created_by', models.UUIDField(help_text='User ID who created the template')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'contract_templates',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['tenant_id', 'approval_status'], name='tpl_tenant_approval_idx'),
                    models.Index(fields=['tenant_id', 'category'], name='tpl_tenant_category_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TemplateVersion',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('version', models.IntegerField(help_text='Template version captured by this snapshot')),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('contract_type', models.CharField(blank=True, default='', max_length=100)),
                ('responsibilities', models.TextField(blank=True, default='')),
                ('default_duration', models.PositiveIntegerField(default=30)),
                ('category', models.CharField(choices=CATEGORY_CHOICES, default='general', max_length=20)),
                ('change_notes', models.TextField(blank=True, default='')),
                ('created_by', models.UUIDField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('template', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='versions', to='contracts.contracttemplate')),
            ],
            options={
                'db_table': 'contract_template_versions',
                'ordering': ['-version', '-created_at'],
                'indexes': [
                    models.Index(fields=['template', 'version'], name='tplver_template_version_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Contract',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tenant_id', models.UUIDField(db_index=True, help_text='Tenant ID for RLS')),
                ('created_by', models.UUIDField(db_index=True, help_text='User ID who owns the contract')),
                ('reference_number', models.CharField(blank=True, db_index=True, default='', max_length=64)),
                ('contract_type', models.CharField(blank=True, default='', max_length=100)),
                ('first_party_name_en', models.CharField(blank=True, default='', max_length=255)),
                ('first_party_name_ar', models.CharField(blank=True, default='', max_length=255)),
                ('first_party_cr', models.CharField(blank=True, default='', help_text='Commercial registration', max_length=100)),
                ('second_party_name_en', models.CharField(blank=True, default='', max_length=255)),
                ('second_party_name_ar', models.CharField(blank=True, default='', max_length=255)),
                ('second_party_cr', models.CharField(blank=True, default='', help_text='Commercial registration', max_length=100)),
                ('promoter_name_en', models.CharField(blank=True, default='', max_length=255)),
                ('promoter_name_ar', models.CharField(blank=True, default='', max_length=255)),
                ('promoter_id', models.CharField(blank=True, default='', max_length=100)),
                ('product_name_en', models.CharField(blank=True, default='', max_length=255)),
                ('product_name_ar', models.CharField(blank=True, default='', max_length=255)),
                ('location_name_en', models.CharField(blank=True, default='', max_length=255)),
                ('location_name_ar', models.CharField(blank=True, default='', max_length=255)),
                ('start_date', models.DateField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('responsibilities', models.TextField(blank=True, default='')),
                ('signature_url', models.URLField(blank=True, default='', max_length=1000)),
                ('stamp_url', models.URLField(blank=True, default='', max_length=1000)),
                ('letterhead_image_url', models.URLField(blank=True, default='', max_length=1000)),
                ('id_photo_url', models.URLField(blank=True, default='', max_length=1000)),
                ('passport_photo_url', models.URLField(blank=True, default='', max_length=1000)),
                ('language', models.CharField(choices=[('en', 'English'), ('ar', 'Arabic'), ('both', 'English and Arabic')], default='both', max_length=4)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('pending', 'Pending Approval'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('active', 'Active')], default='draft', help_text='Contract workflow status', max_length=20)),
                ('contract_data', models.JSONField(blank=True, default=dict, help_text='Raw creation input')),
                ('contract_layout', models.JSONField(blank=True, default=dict, help_text='Generated page layout')),
                ('contract_template', models.JSONField(blank=True, help_text='Filled v2 template document', null=True)),
                ('json_layout', models.JSONField(blank=True, help_text='Figma plugin export', null=True)),
                ('pdf_url', models.CharField(blank=True, default='', max_length=1000)),
                ('pdf_generated_at', models.DateTimeField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('template', models.ForeignKey(blank=True, help_text='Source template used to generate this contract', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='contracts', to='contracts.contracttemplate')),
            ],
            options={
                'db_table': 'contracts',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['tenant_id', 'status'], name='ct_tenant_status_idx'),
                    models.Index(fields=['tenant_id', 'created_by'], name='ct_tenant_owner_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ApprovalToken',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('token', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('party_role', models.CharField(choices=[('first_party', 'First Party'), ('second_party', 'Second Party'), ('promoter', 'Promoter')], max_length=20)),
                ('party_name', models.CharField(blank=True, default='', max_length=255)),
                ('party_email', models.EmailField(blank=True, default='', max_length=254)),
                ('expires_at', models.DateTimeField()),
                ('used', models.BooleanField(default=False)),
                ('used_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('contract', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='approval_tokens', to='contracts.contract')),
            ],
            options={
                'db_table': 'contract_approval_tokens',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['contract', 'used'], name='apt_contract_used_idx'),
                    models.Index(fields=['expires_at'], name='apt_expires_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ContractActivity',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('created', 'Created'), ('updated', 'Updated'), ('deleted', 'Deleted'), ('approval_requested', 'Approval Requested'), ('party_approved', 'Party Approved'), ('approved', 'Approved'), ('pdf_generated', 'PDF Generated'), ('json_regenerated', 'JSON Layout Regenerated')], max_length=32)),
                ('performed_by', models.UUIDField(blank=True, help_text='User ID, empty for link approvals', null=True)),
                ('comment', models.TextField(blank=True, default='')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('contract', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activities', to='contracts.contract')),
            ],
            options={
                'db_table': 'contract_activities',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['contract', 'created_at'], name='cta_contract_created_idx'),
                ],
            },
        ),
    ]
