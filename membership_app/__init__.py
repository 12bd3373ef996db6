# membership_app/__init__.py
