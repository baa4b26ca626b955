from app.nippo import create_app

app = create_app()
