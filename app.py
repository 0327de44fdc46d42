import os
import logging
from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS
from flask_login import LoginManager
from werkzeug.middleware.proxy_fix import ProxyFix

# Import database instance
from database import db

load_dotenv()

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))

# Create the app
app = Flask(__name__)
# Browser clients on other origins only talk to the JSON API
CORS(app, resources={r"/api/*": {"origins": os.environ.get("ALLOWED_ORIGINS", "*")}})
app.secret_key = os.environ.get("SESSION_SECRET", "dev-secret-key-change-in-production")
app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

# Configure the database
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///rankme.db")
app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
    "pool_recycle": 300,
    "pool_pre_ping": True,
}

# Configure upload folder
app.config["UPLOAD_FOLDER"] = os.environ.get("UPLOAD_FOLDER", "uploads")
app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024  # 16MB max file size

# Initialize extensions
db.init_app(app)
login_manager = LoginManager()
login_manager.init_app(app)
login_manager.login_view = 'login'
login_manager.login_message = 'Please log in to access this page.'

@login_manager.user_loader
def load_user(user_id):
    from models import User
    return db.session.get(User, int(user_id))

@login_manager.unauthorized_handler
def unauthorized():
    from flask import flash, jsonify, redirect, request, url_for
    if request.path.startswith('/api/'):
        return jsonify({'success': False, 'error': 'Authentication required'}), 401
    flash(login_manager.login_message, 'info')
    return redirect(url_for('login', next=request.path))

# Create upload directory if it doesn't exist
os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

# Import routes and register them with the app
from routes import register_routes
from api_routes import register_api_routes
register_routes(app)
register_api_routes(app)

with app.app_context():
    # Import models to create tables
    import models  # noqa: F401

    db.create_all()

    # Create default admin user if none exists
    from models import User, UserType
    from werkzeug.security import generate_password_hash

    admin_email = os.environ.get("ADMIN_EMAIL", "admin@rankme.local")
    if not User.query.filter_by(email=admin_email).first():
        admin_user = User(
            email=admin_email,
            name='Administrator',
            password_hash=generate_password_hash(os.environ.get("ADMIN_PASSWORD", "Admin@12345")),
            user_type=UserType.ADMIN
        )
        db.session.add(admin_user)
        db.session.commit()
        logging.info(f"Default admin user created: {admin_email}")

    from payments import seed_default_packages
    seed_default_packages()

    if os.environ.get("SEED_SAMPLE_DATA", "false").lower() == "true":
        from sample_data import seed_sample_data
        seed_sample_data()

if __name__ == '__main__':
    from scheduler import start_background_services

    # Start background services
    start_background_services()

    app.run(host='0.0.0.0', port=int(os.environ.get("PORT", "5000")), debug=True)
