import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('admin', 'Admin'), ('hod', 'Head of Department'), ('doctor', 'Doctor'), ('nurse', 'Nurse'), ('technician', 'Technician')], db_index=True, default='nurse', max_length=16)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Patient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('mrn', models.CharField(blank=True, help_text='Medical record number', max_length=32, null=True, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('age', models.PositiveIntegerField(blank=True, null=True)),
                ('gender', models.CharField(blank=True, max_length=16)),
                ('contact_number', models.CharField(blank=True, max_length=32)),
                ('emergency_contact', models.CharField(blank=True, max_length=255)),
                ('address', models.TextField(blank=True)),
                ('hd_cycle', models.CharField(blank=True, max_length=64)),
                ('hd_frequency', models.PositiveSmallIntegerField(blank=True, help_text='Sessions per week', null=True)),
                ('hd_start_date', models.DateField(blank=True, null=True)),
                ('dry_weight', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('access_type', models.CharField(blank=True, help_text='AVF / AVG / CVC', max_length=16)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='Slot',
            fields=[
                ('id', models.PositiveSmallIntegerField(primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=64)),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
                ('bed_capacity', models.PositiveSmallIntegerField(default=10)),
            ],
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='Session',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_date', models.DateField(db_index=True)),
                ('bed_number', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('phase', models.CharField(choices=[('PRE_DIALYSIS', 'Pre-dialysis'), ('INTRA_DIALYSIS', 'Intra-dialysis'), ('POST_DIALYSIS', 'Post-dialysis'), ('DISCHARGED', 'Discharged')], db_index=True, default='PRE_DIALYSIS', max_length=16)),
                ('is_pre_dialysis_locked', models.BooleanField(default=False)),
                ('is_intra_dialysis_locked', models.BooleanField(default=False)),
                ('pre_dialysis_completed_at', models.DateTimeField(blank=True, null=True)),
                ('intra_dialysis_started_at', models.DateTimeField(blank=True, null=True)),
                ('post_dialysis_started_at', models.DateTimeField(blank=True, null=True)),
                ('discharged_at', models.DateTimeField(blank=True, null=True)),
                ('is_discharged', models.BooleanField(db_index=True, default=False)),
                ('is_moved_to_history', models.BooleanField(default=False)),
                ('prescribed_duration', models.DecimalField(blank=True, decimal_places=2, help_text='Hours', max_digits=4, null=True)),
                ('uf_goal', models.DecimalField(blank=True, decimal_places=2, help_text='Litres', max_digits=5, null=True)),
                ('pre_weight', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('pre_sbp', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('pre_dbp', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('pre_hr', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('pre_temp', models.DecimalField(blank=True, decimal_places=1, max_digits=4, null=True)),
                ('access_site', models.CharField(blank=True, max_length=255)),
                ('pre_assessment_notes', models.TextField(blank=True)),
                ('post_weight', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('post_sbp', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('post_dbp', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('post_hr', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('access_bleeding_time', models.PositiveSmallIntegerField(blank=True, help_text='Minutes', null=True)),
                ('total_fluid_removed', models.DecimalField(blank=True, decimal_places=2, help_text='Litres', max_digits=5, null=True)),
                ('post_access_status', models.CharField(blank=True, max_length=255)),
                ('discharge_notes', models.TextField(blank=True)),
                ('weight_loss', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('is_missed', models.BooleanField(db_index=True, default=False)),
                ('missed_reason', models.CharField(blank=True, choices=[('Sick', 'Sick'), ('Emergency', 'Emergency'), ('Transportation', 'Transportation'), ('Unknown', 'Unknown'), ('Other', 'Other')], max_length=16)),
                ('missed_notes', models.TextField(blank=True)),
                ('missed_at', models.DateTimeField(blank=True, null=True)),
                ('is_missed_resolved', models.BooleanField(default=False)),
                ('missed_resolved_at', models.DateTimeField(blank=True, null=True)),
                ('resolution_notes', models.TextField(blank=True)),
                ('is_auto_generated', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_doctor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='doctor_sessions', to=settings.AUTH_USER_MODEL)),
                ('assigned_nurse', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='nurse_sessions', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sessions_created', to=settings.AUTH_USER_MODEL)),
                ('missed_marked_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='missed_sessions_marked', to=settings.AUTH_USER_MODEL)),
                ('parent_session', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='follow_up_sessions', to='dialysis.session')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sessions', to='dialysis.patient')),
                ('slot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='sessions', to='dialysis.slot')),
            ],
            options={
                'ordering': ['session_date', 'slot_id', 'bed_number'],
                'indexes': [
                    models.Index(fields=['session_date', 'slot', 'is_discharged'], name='dialysis_se_session_3f0c1a_idx'),
                    models.Index(fields=['patient', 'session_date'], name='dialysis_se_patient_8b2d4e_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('is_discharged', False), ('bed_number__isnull', False)), fields=('session_date', 'slot', 'bed_number'), name='uniq_active_bed_per_slot_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MonitoringRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('recorded_at', models.DateTimeField()),
                ('bp_systolic', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('bp_diastolic', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('pulse', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('temperature', models.DecimalField(blank=True, decimal_places=1, max_digits=4, null=True)),
                ('uf_volume', models.DecimalField(blank=True, decimal_places=2, help_text='Litres', max_digits=5, null=True)),
                ('venous_pressure', models.IntegerField(blank=True, null=True)),
                ('arterial_pressure', models.IntegerField(blank=True, null=True)),
                ('blood_flow_rate', models.PositiveSmallIntegerField(blank=True, help_text='mL/min', null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('recorded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='monitoring_records', to=settings.AUTH_USER_MODEL)),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='monitoring_records', to='dialysis.session')),
            ],
            options={
                'ordering': ['recorded_at', 'id'],
                'indexes': [
                    models.Index(fields=['session', 'recorded_at'], name='dialysis_mo_session_5a7e9c_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=64)),
                ('object_type', models.CharField(blank=True, max_length=64, null=True)),
                ('object_id', models.IntegerField(blank=True, null=True)),
                ('detail', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['action', 'created_at'], name='dialysis_au_action_1c6d2f_idx'),
                    models.Index(fields=['object_type', 'object_id', 'created_at'], name='dialysis_au_object__7e4b0a_idx'),
                ],
            },
        ),
    ]
