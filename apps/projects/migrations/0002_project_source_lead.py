from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        ('leads', '0001_initial'),
        ('projects', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='project',
            name='source_lead',
            field=models.ForeignKey(blank=True, help_text='CRM lead this project was converted from', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='projects', to='leads.lead'),
        ),
    ]
