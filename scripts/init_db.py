"""Create the tables and seed reference data.

Idempotent: lines, positions and operators are only inserted into empty
tables, so it is safe to run on every deploy::

    DATABASE_URL=postgresql+psycopg2://... python scripts/init_db.py
"""

from fishline import create_app, db
from fishline.models import LinePosition, Operator, ProductionLine

LINES = ["Sardinha em Lata", "Atum em Lata", "Congelamento"]
POSITIONS = ["Recepção", "Evisceração", "Filetagem", "Cozimento", "Embalagem"]
OPERATORS = [
    ("João Silva", "1001"),
    ("Maria Souza", "1002"),
    ("Antônio Lima", "1003"),
]

app = create_app()

with app.app_context():
    db.create_all()

    if ProductionLine.query.count() == 0:
        db.session.add_all(ProductionLine(nome=n, ativa=True, num_subetapas=0) for n in LINES)
    if LinePosition.query.count() == 0:
        db.session.add_all(LinePosition(descricao=d) for d in POSITIONS)
    if Operator.query.count() == 0:
        db.session.add_all(Operator(nome=n, matricula=m) for n, m in OPERATORS)
    db.session.commit()

    print("Database initialized.")
