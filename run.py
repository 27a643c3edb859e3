from effiplat import create_app
import logging

# Create the app instance using the factory
app = create_app()

if __name__ == '__main__':
    # Set up logging
    logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'))

    # a production server (like Gunicorn) imports `app` directly
    app.run(debug=True)
