from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('categories', '0001_initial'),
        ('projects', '0001_initial'),
        ('finance', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BOQSection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='boq_sections', to='core.organization')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='boq_sections', to='projects.project')),
            ],
            options={
                'db_table': 'boq_sections',
                'ordering': ['sort_order', 'name'],
                'unique_together': {('project', 'name')},
            },
        ),
        migrations.CreateModel(
            name='BOQItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(blank=True, max_length=50, null=True)),
                ('description', models.TextField()),
                ('unit', models.CharField(max_length=30)),
                ('quantity', models.DecimalField(decimal_places=4, max_digits=15)),
                ('rate', models.DecimalField(decimal_places=2, max_digits=15)),
                ('notes', models.TextField(blank=True, null=True)),
                ('is_review_flagged', models.BooleanField(default=False)),
                ('flag_reason', models.CharField(blank=True, max_length=255, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='boq_items', to='categories.categoryitem')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='boq_items', to='core.organization')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='boq_items', to='projects.project')),
                ('section', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='items', to='boq.boqsection')),
                ('stage', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='boq_items', to='projects.stage')),
            ],
            options={
                'db_table': 'boq_items',
                'ordering': ['section__sort_order', 'code', 'id'],
                'indexes': [models.Index(fields=['organization', 'project'], name='boq_item_org_project_idx')],
            },
        ),
        migrations.CreateModel(
            name='BOQExpenseLink',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('expense', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='boq_links', to='finance.expense')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='expense_links', to='boq.boqitem')),
            ],
            options={
                'db_table': 'boq_expense_links',
                'unique_together': {('item', 'expense')},
            },
        ),
        migrations.AddField(
            model_name='boqitem',
            name='expenses',
            field=models.ManyToManyField(blank=True, related_name='boq_items', through='boq.BOQExpenseLink', to='finance.expense'),
        ),
    ]
