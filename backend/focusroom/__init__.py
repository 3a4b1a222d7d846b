from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from focusroom.main import main
    flask_app.register_blueprint(main)

    from focusroom.api.rooms import rooms
    # Mount room routes under /api to match frontend API client
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Importing here ensures the handlers bind to the initialized socketio instance
    from focusroom.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from focusroom.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from focusroom.models import User, create_room
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users and a demo room hosted by the first one
            users = []
            for u in ['testuser1', 'testuser2', 'testuser3']:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)
                users.append(user)
            db.session.flush()
            room = create_room(name='Study Hall', host=users[0])
            for user in users[1:]:
                room.add_member(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
