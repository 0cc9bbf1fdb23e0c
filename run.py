# run.py
# FLASK_APP target: `flask --app run db upgrade` applies migrations.
from dotenv import load_dotenv
load_dotenv()

from handover_pkg import create_app, db

# Configuration is picked from FLASK_ENV.
app = create_app()

if __name__ == '__main__':
    # Local bootstrap without migrations.
    with app.app_context():
        db.create_all()
        app.logger.info(f"Tables created on {app.config['SQLALCHEMY_DATABASE_URI']}")
