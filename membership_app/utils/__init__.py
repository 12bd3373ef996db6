# membership_app/utils/__init__.py
