from fishline.models import Stage


def _create(client, line_id, **extra):
    payload = {"linha_producao_id": line_id, "item_entrada": "SARD-IN", "item_saida": "SARD-LATA"}
    payload.update(extra)
    return client.post("/api/ordens", json=payload)


def test_service_info_and_health(client):
    assert client.get("/").get_json()["status"] == "online"
    assert client.get("/healthz").get_json() == {"ok": True}


def test_reference_endpoints(client):
    lines = client.get("/api/linhas-producao").get_json()
    assert lines["total"] == 1
    assert lines["data"][0]["nome"] == "Sardinha em Lata"
    assert client.get("/api/operadores").get_json()["total"] == 2
    assert client.get("/api/posicoes").get_json()["total"] == 2


def test_order_flow(client, line_id, clock):
    resp = _create(client, line_id, quantidade_inicial="500,5", observacoes="turno A")
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["codigo"] == "OP-20240101-001"
    order_id = body["data"]["id"]

    listed = client.get("/api/ordens").get_json()
    assert listed["total"] == 1
    assert listed["data"][0]["quantidade_inicial"] == 500.5
    assert listed["data"][0]["linha_nome"] == "Sardinha em Lata"

    subetapas = client.get(f"/api/ordens/{order_id}/subetapas").get_json()["data"]
    assert [s["numero_etapa"] for s in subetapas] == [1, 99]
    entry_id, exit_id = subetapas[0]["id"], subetapas[1]["id"]

    resp = client.patch(f"/api/ordens/{order_id}/subetapas/{entry_id}/ativar", json={"ativa": True})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["ativa"] is True

    resp = client.post(f"/api/ordens/{order_id}/subetapas", json={"item_codigo": "SARD-LIMPA", "criado_por": "ana"})
    assert resp.status_code == 201
    limpeza_id = resp.get_json()["data"]["id"]
    assert resp.get_json()["data"]["numero_etapa"] == 2

    client.patch(f"/api/ordens/{order_id}/subetapas/{exit_id}/ativar", json={})
    for stage_id, peso in ((entry_id, 100), (limpeza_id, 90), (exit_id, 72)):
        resp = client.post(f"/api/subetapas/{stage_id}/pesos", json={"operador": "ana", "peso_kg": peso})
        assert resp.status_code == 201

    rendimento = client.get(f"/api/ordens/{order_id}/rendimento").get_json()["data"]
    assert [r["rendimento_geral"] for r in rendimento] == [100.0, 90.0, 72.0]
    assert rendimento[2]["rendimento_etapa"] == 80.0

    for stage_id in (entry_id, limpeza_id, exit_id):
        resp = client.patch(f"/api/ordens/{order_id}/subetapas/{stage_id}/concluir", json={"ativa": False})
        assert resp.status_code == 200

    listed = client.get("/api/ordens").get_json()["data"][0]
    assert listed["status"] == "FECHADA"
    assert listed["data_fim"] is not None


def test_create_order_errors(client, line_id):
    resp = client.post("/api/ordens", json={"item_entrada": "A"})
    body = resp.get_json()
    assert resp.status_code == 400
    assert set(body) == {"success", "error"}
    assert body["success"] is False
    assert "linha_producao_id" in body["error"]

    assert _create(client, 9999).status_code == 404


def test_status_endpoint(client, order):
    url = f"/api/ordens/{order['id']}/status"
    assert client.put(url, json={"status": "QUALQUER"}).status_code == 400
    assert client.put("/api/ordens/999/status", json={"status": "ABERTA"}).status_code == 404

    resp = client.put(url, json={"status": "CANCELADA"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "CANCELADA"
    assert client.put(url, json={"status": "ABERTA"}).status_code == 400


def test_delete_order_endpoint(client, order):
    resp = client.delete(f"/api/ordens/{order['id']}")
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"codigo": order["codigo"]}
    assert client.delete(f"/api/ordens/{order['id']}").status_code == 404


def test_delete_running_order_is_rejected(client, order):
    entry = Stage.query.filter_by(ordem_producao_id=order["id"], numero_etapa=1).one()
    client.patch(f"/api/ordens/{order['id']}/subetapas/{entry.id}/ativar", json={})
    resp = client.delete(f"/api/ordens/{order['id']}")
    assert resp.status_code == 400
    assert "ABERTA" in resp.get_json()["error"]


def test_stage_endpoints_errors(client, order):
    assert client.post(f"/api/ordens/{order['id']}/subetapas", json={}).status_code == 400
    assert client.post("/api/ordens/999/subetapas", json={"item_codigo": "X"}).status_code == 404
    assert client.patch(f"/api/ordens/{order['id']}/subetapas/999/ativar", json={}).status_code == 404
    assert client.delete("/api/subetapas/999").status_code == 404


def test_stage_with_weights_cannot_be_deleted(client, order):
    resp = client.post(f"/api/ordens/{order['id']}/subetapas", json={"item_codigo": "LIMPO", "criado_por": "ana"})
    stage_id = resp.get_json()["data"]["id"]
    client.post(f"/api/subetapas/{stage_id}/pesos", json={"operador": "ana", "peso_kg": 1})
    resp = client.delete(f"/api/subetapas/{stage_id}")
    assert resp.status_code == 409
    assert resp.get_json()["success"] is False


def test_boundary_stage_cannot_be_deleted(client, order):
    exit_id = Stage.query.filter_by(ordem_producao_id=order["id"], numero_etapa=99).one().id
    resp = client.delete(f"/api/subetapas/{exit_id}")
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_non_object_json_body_is_rejected(client, order):
    entry = Stage.query.filter_by(ordem_producao_id=order["id"], numero_etapa=1).one().id
    for method, url in (
        ("post", "/api/ordens"),
        ("put", f"/api/ordens/{order['id']}/status"),
        ("post", f"/api/ordens/{order['id']}/subetapas"),
        ("patch", f"/api/ordens/{order['id']}/subetapas/{entry}/ativar"),
        ("post", f"/api/subetapas/{entry}/pesos"),
    ):
        resp = getattr(client, method)(url, json=[1, 2])
        assert resp.status_code == 400, url
        assert resp.get_json() == {"success": False, "error": "Corpo JSON deve ser um objeto"}


def test_non_finite_weight_over_http(client, order):
    entry = Stage.query.filter_by(ordem_producao_id=order["id"], numero_etapa=1).one().id
    for peso in ("1e999", "nan", "inf"):
        resp = client.post(f"/api/subetapas/{entry}/pesos", json={"operador": "ana", "peso_kg": peso})
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False
    assert client.get(f"/api/subetapas/{entry}/pesos").get_json()["total"] == 0


def test_weight_endpoints(client, order):
    entry = Stage.query.filter_by(ordem_producao_id=order["id"], numero_etapa=1).one().id
    url = f"/api/subetapas/{entry}/pesos"

    assert client.post(url, json={"operador": "ana"}).status_code == 400
    assert client.post(url, json={"operador": "ana", "peso_kg": 0}).status_code == 400
    assert client.post("/api/subetapas/999/pesos", json={"operador": "ana", "peso_kg": 1}).status_code == 404

    record = client.post(url, json={"operador": "ana", "peso_kg": 2.5, "estacao": "tablet"}).get_json()["data"]
    assert record["operador"] == "ANA"

    listed = client.get(url).get_json()
    assert listed["total"] == 1
    assert listed["data"][0]["ordem_codigo"] == order["codigo"]

    resp = client.put(f"/api/subetapas/pesos/{record['id']}", json={"peso_kg": 3})
    assert resp.get_json()["data"]["peso_kg"] == 3.0
    assert client.put(f"/api/subetapas/pesos/{record['id']}", json={}).status_code == 400
    assert client.put("/api/subetapas/pesos/999", json={"peso_kg": 3}).status_code == 404

    assert client.delete(f"/api/subetapas/pesos/{record['id']}").status_code == 200
    assert client.get(url).get_json()["total"] == 0
