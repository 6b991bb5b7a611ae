from datetime import datetime

from . import db
from .lifecycle import OrderStatus, StageRole
from .utils import fmt_ts


class ProductionLine(db.Model):
    __tablename__ = "production_line"
    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(120), nullable=False)
    ativa = db.Column(db.Boolean, nullable=False, default=True)
    # best-effort counter, bumped on stage create/delete; never read as truth
    num_subetapas = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "nome": self.nome,
            "ativa": bool(self.ativa),
            "num_subetapas": self.num_subetapas or 0,
        }


class ProductionOrder(db.Model):
    __tablename__ = "ordem_producao"
    id = db.Column(db.Integer, primary_key=True)
    codigo = db.Column(db.String(32), unique=True, nullable=False, index=True)  # OP-YYYYMMDD-NNN
    linha_producao_id = db.Column(db.Integer, db.ForeignKey("production_line.id"), nullable=False)
    item_entrada = db.Column(db.String(50), nullable=False)
    item_saida = db.Column(db.String(50), nullable=False)
    quantidade_inicial = db.Column(db.Float, nullable=False, default=0.0)
    observacoes = db.Column(db.Text, default="")
    status = db.Column(db.String(20), nullable=False, default=OrderStatus.ABERTA.value)
    data_criacao = db.Column(db.DateTime, nullable=False, default=datetime.now)
    data_fim = db.Column(db.DateTime, nullable=True)

    linha = db.relationship("ProductionLine")
    subetapas = db.relationship(
        "Stage",
        backref="ordem",
        cascade="all, delete-orphan",
        order_by="Stage.numero_etapa",
        lazy=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "codigo": self.codigo,
            "linha_producao_id": self.linha_producao_id,
            "item_entrada": self.item_entrada,
            "item_saida": self.item_saida,
            "quantidade_inicial": self.quantidade_inicial,
            "observacoes": self.observacoes,
            "status": self.status,
            "data_criacao": fmt_ts(self.data_criacao),
            "data_fim": fmt_ts(self.data_fim),
        }


class Stage(db.Model):
    """A weighing checkpoint (subetapa) of an order.

    ``numero_etapa`` 1 is the process entry, 99 the process exit and 2..98
    are intermediate stages created by operators.  See
    :class:`~fishline.lifecycle.StageRole`.
    """

    __tablename__ = "subetapa"
    __table_args__ = (
        db.UniqueConstraint("ordem_producao_id", "numero_etapa", name="uq_subetapa_ordem_numero"),
    )
    id = db.Column(db.Integer, primary_key=True)
    ordem_producao_id = db.Column(db.Integer, db.ForeignKey("ordem_producao.id"), nullable=False, index=True)
    numero_etapa = db.Column(db.Integer, nullable=False)
    descricao = db.Column(db.String(255))
    item_codigo = db.Column(db.String(50), nullable=False)
    criado_por = db.Column(db.String(120), nullable=False, default="Sistema")
    ativa = db.Column(db.Boolean, nullable=False, default=False)
    data_criacao = db.Column(db.DateTime, nullable=False, default=datetime.now)
    data_ativacao = db.Column(db.DateTime, nullable=True)
    data_conclusao = db.Column(db.DateTime, nullable=True)

    registros = db.relationship("WeightRecord", backref="subetapa", cascade="all, delete-orphan", lazy=True)

    @property
    def papel(self) -> StageRole:
        return StageRole.of(self.numero_etapa)

    def to_dict(self):
        return {
            "id": self.id,
            "ordem_producao_id": self.ordem_producao_id,
            "numero_etapa": self.numero_etapa,
            "papel": self.papel.value,
            "descricao": self.descricao,
            "item_codigo": self.item_codigo,
            "criado_por": self.criado_por,
            "ativa": bool(self.ativa),
            "data_criacao": fmt_ts(self.data_criacao),
            "data_ativacao": fmt_ts(self.data_ativacao),
            "data_conclusao": fmt_ts(self.data_conclusao),
        }


class WeightRecord(db.Model):
    __tablename__ = "registro_peso"
    id = db.Column(db.Integer, primary_key=True)
    subetapa_id = db.Column(db.Integer, db.ForeignKey("subetapa.id"), nullable=False, index=True)
    operador = db.Column(db.String(120), nullable=False)
    peso_kg = db.Column(db.Float, nullable=False)
    quantidade_unidades = db.Column(db.Integer, nullable=True)
    tipo_medida = db.Column(db.String(20), nullable=False, default="KG")
    estacao = db.Column(db.String(20), nullable=False, default="WEB")  # WEB / TABLET
    posicao_id = db.Column(db.Integer, db.ForeignKey("posicao_linha.id"), nullable=True)
    observacoes = db.Column(db.Text, default="")
    data_registro = db.Column(db.DateTime, nullable=False, default=datetime.now, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "subetapa_id": self.subetapa_id,
            "operador": self.operador,
            "peso_kg": self.peso_kg,
            "quantidade_unidades": self.quantidade_unidades,
            "tipo_medida": self.tipo_medida,
            "estacao": self.estacao,
            "posicao_id": self.posicao_id,
            "observacoes": self.observacoes,
            "data_registro": fmt_ts(self.data_registro),
        }


class LinePosition(db.Model):
    __tablename__ = "posicao_linha"
    id = db.Column(db.Integer, primary_key=True)
    descricao = db.Column(db.String(120), nullable=False)

    def to_dict(self):
        return {"id": self.id, "descricao": self.descricao}


class Operator(db.Model):
    __tablename__ = "operadores"
    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(120), nullable=False)
    matricula = db.Column(db.String(50), unique=True, nullable=True)

    def to_dict(self):
        return {"id": self.id, "nome": self.nome, "matricula": self.matricula}
