from datetime import datetime, timezone
import logging

from flask import Flask, Blueprint, current_app, request, jsonify
from flask_login import LoginManager, login_user, login_required, logout_user, current_user
from werkzeug.security import generate_password_hash, check_password_hash

from .authority import RoleAuthority
from .config import Config
from .errors import MarketError, AuthorizationError, NotFoundError, ValidationError
from .market import Marketplace
from .models import db, User, Transaction
from .seed import init_db_command

logger = logging.getLogger(__name__)

bp = Blueprint('market', __name__)
login_manager = LoginManager()


def create_app(config=None, rail=None, authority=None, registry=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    if not app.testing:
        logging.basicConfig(level=app.config['LOG_LEVEL'])

    db.init_app(app)
    login_manager.init_app(app)

    if authority is None:
        authority = RoleAuthority(app.config['ADMIN_ROLES'])
    app.extensions['fairtix'] = Marketplace(rail=rail, authority=authority, registry=registry)

    app.register_blueprint(bp)
    app.cli.add_command(init_db_command)
    return app


def get_market():
    return current_app.extensions['fairtix']


@login_manager.user_loader
def load_user(user_id):
    user = db.session.get(User, int(user_id))
    # Deactivated accounts lose their open sessions too.
    if user is None or not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'status': 'error', 'kind': 'AuthenticationRequired', 'message': 'Login required'}), 401


@bp.app_errorhandler(MarketError)
def handle_market_error(error):
    return jsonify(error.as_dict()), error.status_code


# --- REQUEST PARSING ---

def _payload():
    return request.get_json(silent=True) or request.form

def _int_field(data, name, default=None):
    raw = data.get(name, default)
    if raw is None or raw == '':
        raise ValidationError(f"Missing field '{name}'")
    if isinstance(raw, (bool, float)):
        raise ValidationError(f"Field '{name}' must be an integer")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Field '{name}' must be an integer")

def _date_field(data, name):
    raw = data.get(name)
    if raw is None or raw == '':
        raise ValidationError(f"Missing field '{name}'")
    try:
        if isinstance(raw, (int, float)):
            return datetime.fromtimestamp(raw, timezone.utc)
        text = str(raw)
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        return datetime.fromisoformat(text)
    except (TypeError, ValueError, OverflowError, OSError):
        raise ValidationError(f"Field '{name}' must be an ISO-8601 date or a timestamp")

# --- ACCOUNT ROUTES ---

@bp.route('/register', methods=['POST'])
def register():
    # Public registration is strictly for Customers
    data = _payload()
    username = data.get('username')
    password = data.get('password')
    if not username or not password:
        raise ValidationError("Username and password are required")
    if User.query.filter_by(username=username).first():
        raise ValidationError("Username already taken")

    user = User(
        username=username,
        password_hash=generate_password_hash(password),
        role='customer',
        balance=0
    )
    db.session.add(user)
    db.session.commit()
    login_user(user)
    return jsonify({'status': 'success', 'wallet_address': user.wallet_address}), 201

@bp.route('/login', methods=['POST'])
def login():
    data = _payload()
    user = User.query.filter_by(username=data.get('username')).first()
    if user and check_password_hash(user.password_hash, data.get('password') or ''):
        # Security Check: Is Account Active?
        if not user.is_active:
            raise AuthorizationError("This account has been deactivated. Contact Admin.")
        login_user(user)
        return jsonify({'status': 'success', 'wallet_address': user.wallet_address})
    raise AuthorizationError("Invalid Credentials")

@bp.route('/logout')
def logout():
    logout_user()
    return jsonify({'status': 'success'})

@bp.route('/manage_user/<int:user_id>/toggle', methods=['POST'])
@login_required
def manage_user(user_id):
    if not get_market().authority.is_administrator(current_user.wallet_address):
        raise AuthorizationError("Unauthorized")
    target_user = db.session.get(User, user_id)
    if target_user is None:
        raise NotFoundError(f"User {user_id} does not exist")
    if target_user.id == current_user.id:
        raise ValidationError("Administrators cannot deactivate themselves")

    target_user.is_active = not target_user.is_active
    db.session.commit()
    status = "Activated" if target_user.is_active else "Deactivated"
    logger.info("User %s %s by %s", target_user.username, status, current_user.username)
    return jsonify({'status': 'success', 'is_active': target_user.is_active})

# --- WALLET ---

def _tx_dict(tx):
    return {
        'tx_hash': tx.tx_hash, 'ticket_id': tx.ticket_id, 'event_name': tx.event_name,
        'from': tx.from_address, 'to': tx.to_address, 'amount': tx.amount, 'type': tx.type,
        'timestamp': tx.timestamp.isoformat() if tx.timestamp else None,
    }

@bp.route('/wallet', methods=['GET', 'POST'])
@login_required
def wallet():
    if request.method == 'POST':
        get_market().top_up(current_user.wallet_address, _int_field(_payload(), 'amount'))

    txs = Transaction.query.filter(
        (Transaction.from_address == current_user.wallet_address) |
        (Transaction.to_address == current_user.wallet_address)
    ).order_by(Transaction.timestamp.desc(), Transaction.id.desc()).all()
    return jsonify({
        'wallet_address': current_user.wallet_address,
        'balance': current_user.balance,
        'transactions': [_tx_dict(tx) for tx in txs],
    })

@bp.route('/withdraw', methods=['POST'])
@login_required
def withdraw():
    balance = get_market().withdraw(current_user.wallet_address, _int_field(_payload(), 'amount'))
    return jsonify({'status': 'success', 'balance': balance})

@bp.route('/ledger')
def public_ledger():
    txs = Transaction.query.order_by(Transaction.timestamp.desc(), Transaction.id.desc())\
        .limit(current_app.config['LEDGER_LIMIT']).all()
    return jsonify({'transactions': [_tx_dict(tx) for tx in txs]})

# --- EVENTS ---

@bp.route('/events', methods=['POST'])
@login_required
def create_event():
    data = _payload()
    event_id = get_market().create_event(
        current_user.wallet_address,
        name=data.get('name') or '',
        description=data.get('description') or '',
        date=_date_field(data, 'date'),
        location=data.get('location') or '',
        total_tickets=_int_field(data, 'total_tickets'),
        ticket_price=_int_field(data, 'ticket_price'),
        royalty_percent=_int_field(data, 'royalty_percent', 0),
        max_resale_multiplier=_int_field(data, 'max_resale_multiplier', 100),
    )
    return jsonify({'status': 'success', 'event_id': event_id}), 201

@bp.route('/events/<int:event_id>')
def event_info(event_id):
    return jsonify(get_market().get_event_info(event_id).as_dict())

@bp.route('/events/<int:event_id>/purchase', methods=['POST'])
@login_required
def purchase_ticket(event_id):
    data = _payload()
    ticket_id = get_market().purchase_ticket(
        current_user.wallet_address, event_id,
        seat_number=_int_field(data, 'seat_number', 0),
        value=_int_field(data, 'value'),
    )
    return jsonify({'status': 'success', 'ticket_id': ticket_id}), 201

# --- TICKETS ---

@bp.route('/tickets/<int:ticket_id>')
def ticket_info(ticket_id):
    market = get_market()
    info = market.get_ticket_info(ticket_id).as_dict()
    info['owner'] = market.owner_of(ticket_id)
    return jsonify(info)

@bp.route('/tickets/<int:ticket_id>/resell', methods=['POST'])
@login_required
def resell_ticket(ticket_id):
    price = _int_field(_payload(), 'price')
    get_market().resell_ticket(current_user.wallet_address, ticket_id, price)
    return jsonify({'status': 'success', 'ticket_id': ticket_id, 'price': price})

@bp.route('/tickets/<int:ticket_id>/buy', methods=['POST'])
@login_required
def buy_resold_ticket(ticket_id):
    value = _int_field(_payload(), 'value')
    split = get_market().purchase_resold_ticket(current_user.wallet_address, ticket_id, value)
    return jsonify({'status': 'success', 'ticket_id': ticket_id,
                    'royalty': split.royalty, 'seller_amount': split.seller})

@bp.route('/tickets/<int:ticket_id>/transfer', methods=['POST'])
@login_required
def transfer_ticket(ticket_id):
    recipient = _payload().get('to')
    get_market().transfer_ticket(current_user.wallet_address, ticket_id, recipient)
    return jsonify({'status': 'success', 'ticket_id': ticket_id, 'owner': recipient})

@bp.route('/tickets/<int:ticket_id>/validate', methods=['POST'])
@login_required
def validate_ticket(ticket_id):
    get_market().validate_ticket(current_user.wallet_address, ticket_id)
    return jsonify({'status': 'success', 'ticket_id': ticket_id, 'is_used': True})
