from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group, Permission


class Command(BaseCommand):
    help = 'Create user groups for role-based access: Admin, Manager, Staff'

    def handle(self, *args, **options):
        groups_config = [
            {'name': 'Admin', 'description': 'Full system access including the admin site'},
            {'name': 'Manager', 'description': 'Manage assets, kitchens, vehicles and users of their facility'},
            {'name': 'Staff', 'description': 'Day-to-day work: tickets, consumption, trips'},
        ]

        created_count = 0
        existing_count = 0

        for group_config in groups_config:
            group, created = Group.objects.get_or_create(name=group_config['name'])

            if created:
                self.stdout.write(self.style.SUCCESS(f'Created group: {group_config["name"]}'))
                created_count += 1
            else:
                self.stdout.write(f'  Group already exists: {group_config["name"]}')
                existing_count += 1

            if group_config['name'] == 'Admin':
                group.permissions.set(Permission.objects.all())
                self.stdout.write('  Added all permissions to Admin group')
            elif group_config['name'] == 'Manager':
                # everything except the admin site and user accounts
                permissions = Permission.objects.exclude(
                    content_type__app_label='admin'
                ).exclude(
                    content_type__app_label='core',
                    codename__in=['add_user', 'change_user', 'delete_user']
                )
                group.permissions.set(permissions)
                self.stdout.write('  Added module permissions to Manager group')
            else:
                permissions = Permission.objects.filter(codename__startswith='view_').exclude(
                    content_type__app_label__in=['admin', 'auth', 'contenttypes', 'sessions']
                )
                group.permissions.set(permissions)
                self.stdout.write('  Added view permissions to Staff group')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} groups created, {existing_count} groups already existed'
        ))
