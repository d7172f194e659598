"""
wbtariffs_api — operational HTTP surface (health, readiness, metrics, status).

    from wbtariffs_api.app import create_app
    app = create_app(services)
"""
