from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='CategoryType',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(max_length=50, unique=True)),
                ('label', models.CharField(max_length=100)),
                ('description', models.TextField(blank=True)),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'category_types',
                'ordering': ['sort_order', 'key'],
            },
        ),
        migrations.CreateModel(
            name='CategoryItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('is_active', models.BooleanField(default=True)),
                ('is_editable', models.BooleanField(default=True)),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='items', to='categories.categorytype')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='category_items', to='core.organization')),
            ],
            options={
                'db_table': 'category_items',
                'ordering': ['sort_order', 'name'],
                'indexes': [models.Index(fields=['organization', 'category_type'], name='cat_item_org_type_idx')],
                'unique_together': {('organization', 'category_type', 'name')},
            },
        ),
    ]
