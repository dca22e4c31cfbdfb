from app import create_app, socketio

app = create_app()


def main():
    socketio.run(
        app,
        host=app.config['HOST'],
        port=app.config['PORT'],
        debug=app.config['DEBUG'],
        # Werkzeug refuses to serve outside debug mode unless told otherwise
        allow_unsafe_werkzeug=not app.config['DEBUG'],
    )


if __name__ == '__main__':
    main()
