from carelink import create_app
from carelink.services.auth_service import register_user

DEMO_USERS = [
    ("ana@patient.com", "Ana Reyes", None),
    ("ben@patient.com", "Ben Cruz", None),
    ("mendoza@doctor.com", "Mendoza", "Family Medicine"),
    ("santos@doctor.com", "Santos", "Pediatrics"),
    ("front@staff.com", "Front Desk", None),
]

app = create_app()

with app.app_context():
    for email, username, specialization in DEMO_USERS:
        user, error = register_user(email, username, "changeme", specialization=specialization)
        if error:
            print(f"{email}: {error}")
        else:
            print(f"{email}: created as {user.role.value}")
