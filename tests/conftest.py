from datetime import datetime, timedelta

import pytest

from fishline import create_app, db
from fishline.models import LinePosition, Operator, ProductionLine


class FakeClock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture()
def app():
    app = create_app(testing=True)
    with app.app_context():
        db.create_all()
        db.session.add(ProductionLine(nome="Sardinha em Lata", ativa=True, num_subetapas=0))
        db.session.add(ProductionLine(nome="Linha Antiga", ativa=False, num_subetapas=0))
        db.session.add(LinePosition(descricao="Recepção"))
        db.session.add(LinePosition(descricao="Embalagem"))
        db.session.add(Operator(nome="Maria Souza", matricula="1002"))
        db.session.add(Operator(nome="João Silva", matricula="1001"))
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def line_id(app):
    return ProductionLine.query.filter_by(nome="Sardinha em Lata").one().id


@pytest.fixture()
def clock(monkeypatch):
    fake = FakeClock(datetime(2024, 1, 1, 8, 0, 0))
    monkeypatch.setattr("fishline.utils.now", fake)
    return fake


@pytest.fixture()
def order(app, line_id, clock):
    """A fresh ABERTA order with its seeded stages 1 and 99."""
    from fishline import orders
    return orders.create_order(line_id, "PEIXE-IN", "PEIXE-OUT", 1000, "lote teste")
