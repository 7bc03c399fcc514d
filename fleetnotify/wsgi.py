from fleetnotify.server import create_app

app = create_app()
