from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Party',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('phone', models.CharField(blank=True, max_length=20, null=True)),
                ('location', models.CharField(blank=True, max_length=255, null=True)),
                ('type', models.CharField(choices=[('VENDOR', 'Vendor'), ('LABOUR', 'Labour'), ('SUBCONTRACTOR', 'Subcontractor'), ('CLIENT', 'Client')], max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='parties', to='core.organization')),
            ],
            options={
                'verbose_name_plural': 'parties',
                'db_table': 'parties',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['organization', 'type'], name='party_org_type_idx'),
                    models.Index(fields=['organization', 'name'], name='party_org_name_idx'),
                ],
            },
        ),
    ]
