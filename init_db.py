import sys

from quizapp import create_app, db
from quizapp.models import Classroom


def init_database(class_names=()):
    app = create_app()
    with app.app_context():
        db.create_all()
        print("✅ Database tables created successfully.")

        for name in class_names:
            name = name.strip()
            if not name or Classroom.query.filter_by(name=name).first():
                continue
            db.session.add(Classroom(name=name))
            print(f"➕ Class {name} added.")
        db.session.commit()


if __name__ == "__main__":
    # python init_db.py "Kelas A" "Kelas B"
    init_database(sys.argv[1:])
