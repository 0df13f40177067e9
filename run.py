from dms import create_app

app = create_app()

if __name__ == '__main__':
    settings = app.extensions['dms_settings']
    app.run(host='0.0.0.0', port=settings.port, debug=settings.is_development)
