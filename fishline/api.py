from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from . import db, orders, stages, weights, yields
from .errors import FishlineError, InfrastructureError, ValidationError

api = Blueprint("api", __name__)


def ok(data=None, status=200, message=None):
    body = {"success": True}
    if message:
        body["message"] = message
    if isinstance(data, list):
        body["total"] = len(data)
    body["data"] = data
    return jsonify(body), status


def item_catalog():
    return current_app.extensions["item_catalog"]


def _body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Corpo JSON deve ser um objeto")
    return data


@api.errorhandler(FishlineError)
def handle_business_error(e: FishlineError):
    if isinstance(e, InfrastructureError):
        current_app.logger.error("%s %s failed: %s", request.method, request.path, e.message)
    else:
        current_app.logger.warning("%s %s rejected: %s", request.method, request.path, e.message)
    return jsonify({"success": False, "error": e.message}), e.status_code


@api.errorhandler(SQLAlchemyError)
def handle_store_error(e: SQLAlchemyError):
    db.session.rollback()
    current_app.logger.exception("%s %s store error: %s", request.method, request.path, e)
    return jsonify({"success": False, "error": "Erro de acesso ao banco de dados"}), 500


@api.errorhandler(Exception)
def handle_unexpected_error(e: Exception):
    if isinstance(e, HTTPException):
        return jsonify({"success": False, "error": e.description}), e.code
    db.session.rollback()
    current_app.logger.exception("%s %s unexpected error", request.method, request.path)
    return jsonify({"success": False, "error": "Erro interno do servidor"}), 500


# ---- reference data ----

@api.get("/linhas-producao")
def list_production_lines():
    return ok(orders.list_production_lines())


@api.get("/operadores")
def list_operators():
    return ok(orders.list_operators())


@api.get("/posicoes")
def list_positions():
    return ok(stages.list_positions())


@api.get("/sap/produtos-entrada")
def sap_input_items():
    return ok(item_catalog().input_items())


@api.get("/sap/produtos-saida")
def sap_output_items():
    return ok(item_catalog().output_items())


@api.get("/sap/teste")
def sap_connection():
    return jsonify(item_catalog().test_connection())


# ---- orders ----

@api.get("/ordens")
def list_orders():
    return ok(orders.list_orders())


@api.post("/ordens")
def create_order():
    data = _body()
    order = orders.create_order(
        data.get("linha_producao_id"),
        data.get("item_entrada"),
        data.get("item_saida"),
        data.get("quantidade_inicial"),
        data.get("observacoes"),
    )
    return ok(order, 201, f"Ordem criada com código: {order['codigo']} e subetapas geradas")


@api.put("/ordens/<int:order_id>/status")
def update_order_status(order_id):
    data = _body()
    order = orders.update_status(order_id, data.get("status"))
    return ok(order, message="Status atualizado com sucesso")


@api.delete("/ordens/<int:order_id>")
def delete_order(order_id):
    codigo = orders.delete_order(order_id)
    return ok({"codigo": codigo}, message=f"Ordem {codigo} deletada com sucesso")


@api.get("/ordens/<int:order_id>/rendimento")
def order_yield(order_id):
    return ok(yields.compute_yield(order_id))


# ---- stages ----

@api.get("/ordens/<int:order_id>/subetapas")
def list_stages(order_id):
    return ok(stages.list_stages(order_id))


@api.post("/ordens/<int:order_id>/subetapas")
def create_stage(order_id):
    data = _body()
    stage = stages.create_stage(
        order_id,
        data.get("descricao"),
        data.get("item_codigo"),
        data.get("criado_por"),
    )
    return ok(stage, 201, "Subetapa criada com sucesso")


@api.patch("/ordens/<int:order_id>/subetapas/<int:stage_id>/ativar")
def activate_stage(order_id, stage_id):
    data = _body()
    stage = stages.activate_stage(stage_id, data.get("ativa"), data.get("data_ativacao"), order_id=order_id)
    return ok(stage, message="Subetapa ativada com sucesso")


@api.patch("/ordens/<int:order_id>/subetapas/<int:stage_id>/concluir")
def conclude_stage(order_id, stage_id):
    data = _body()
    stage = stages.conclude_stage(stage_id, data.get("ativa"), data.get("data_conclusao"), order_id=order_id)
    return ok(stage, message="Subetapa concluída com sucesso")


@api.delete("/subetapas/<int:stage_id>")
def delete_stage(stage_id):
    return ok(stages.delete_stage(stage_id), message="Subetapa deletada com sucesso")


# ---- weights ----

@api.get("/subetapas/<int:stage_id>/pesos")
def list_weights(stage_id):
    return ok(weights.list_weights(stage_id))


@api.post("/subetapas/<int:stage_id>/pesos")
def register_weight(stage_id):
    data = _body()
    record = weights.register_weight(
        stage_id,
        operador=data.get("operador"),
        peso_kg=data.get("peso_kg"),
        quantidade_unidades=data.get("quantidade_unidades"),
        tipo_medida=data.get("tipo_medida"),
        estacao=data.get("estacao"),
        posicao_id=data.get("posicao_id"),
        observacoes=data.get("observacoes"),
    )
    return ok(record, 201, "Peso registrado com sucesso")


@api.put("/subetapas/pesos/<int:weight_id>")
def edit_weight(weight_id):
    data = _body()
    return ok(weights.edit_weight(weight_id, data.get("peso_kg")), message="Peso atualizado com sucesso")


@api.delete("/subetapas/pesos/<int:weight_id>")
def delete_weight(weight_id):
    return ok(weights.delete_weight(weight_id), message="Peso removido com sucesso")
