from flask_sqlalchemy import SQLAlchemy

# shared by every data table, bound to the app in create_app()
db = SQLAlchemy()
