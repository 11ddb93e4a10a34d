import os
from jenga_gateway import create_app
from jenga_gateway.extensions import db

app = create_app(os.getenv('FLASK_ENV', 'development'))

@app.shell_context_processor
def make_shell_context():
    from jenga_gateway.models import JengaTransaction
    from jenga_gateway.services.settings_service import get_settings_store
    return {
        'db': db,
        'JengaTransaction': JengaTransaction,
        'settings': get_settings_store(app).current()
    }

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
