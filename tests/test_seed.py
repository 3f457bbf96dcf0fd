from fairtix import create_app
from fairtix.models import User


def test_init_db_seeds_admin(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'ledger.db'}",
        'ADMIN_USERNAME': 'root',
        'ADMIN_PASSWORD': 'hunter22',
    })
    runner = app.test_cli_runner()

    result = runner.invoke(args=['init-db'])
    assert result.exit_code == 0
    assert 'SYSTEM INITIALIZED' in result.output

    with app.app_context():
        admin = User.query.filter_by(role='admin').one()
        assert admin.username == 'root'
        assert admin.wallet_address == app.config['ADMIN_WALLET']
        assert app.extensions['fairtix'].authority.is_administrator(admin.wallet_address)

    result = runner.invoke(args=['init-db'])
    assert 'Skipping seed' in result.output
    with app.app_context():
        assert User.query.count() == 1
