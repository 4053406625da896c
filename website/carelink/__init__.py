import logging

from flask import Flask
from .config import Config
from .extensions import db
from carelink.models.user import User
from carelink.models.patient import Patient
from carelink.models.doctor import Doctor
from carelink.models.appointment import Appointment
from carelink.models.availability import Availability
from carelink.models.notification import Notification

def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    db.init_app(app)

    with app.app_context():
        db.create_all()

    from .controllers.auth_controller import auth_bp
    from .controllers.patient_controller import patient_bp
    from .controllers.doctor_controller import doctor_bp
    from .controllers.staff_controller import staff_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(patient_bp)
    app.register_blueprint(doctor_bp)
    app.register_blueprint(staff_bp)

    from .commands import register_commands
    register_commands(app)

    from .services.staff_oversight import init_change_log
    init_change_log(app)

    return app
