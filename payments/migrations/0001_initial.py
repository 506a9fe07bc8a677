from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import payments.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_id', models.CharField(db_index=True, editable=False, max_length=40, unique=True)),
                ('request_id', models.CharField(max_length=64)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('payment_method', models.CharField(choices=[('wallet', 'Wallet'), ('bank', 'Bank'), ('cash', 'Cash')], max_length=12)),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed'), ('refunded', 'Refunded')], db_index=True, default='pending', max_length=12)),
                ('admin_commission_rate', models.DecimalField(decimal_places=4, default=payments.models.default_commission_rate, max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('1'))])),
                ('admin_commission', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14)),
                ('seller_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14)),
                ('shipping_address', models.TextField(blank=True, default='')),
                ('transaction_id', models.CharField(blank=True, default='', max_length=64)),
                ('pay_url', models.TextField(blank=True, default='')),
                ('notes', models.JSONField(blank=True, default=list)),
                ('error_code', models.CharField(blank=True, default='', max_length=32)),
                ('error_message', models.TextField(blank=True, default='')),
                ('received_successfully', models.BooleanField(default=False)),
                ('received_successfully_deadline', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('received_confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('buyer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchases', to=settings.AUTH_USER_MODEL)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='catalog.product')),
                ('seller', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-created_at',),
                'indexes': [models.Index(fields=['payment_status', 'received_successfully', 'received_successfully_deadline'], name='order_receipt_due_idx')],
            },
        ),
        migrations.CreateModel(
            name='ReconciliationIssue',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('product_sold', 'Product not marked sold')], max_length=32)),
                ('detail', models.TextField(blank=True, default='')),
                ('resolved', models.BooleanField(db_index=True, default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reconciliation_issues', to='payments.order')),
            ],
            options={
                'ordering': ('-created_at',),
            },
        ),
    ]
