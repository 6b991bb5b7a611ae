"""Drive a running server the way several tablets would.

Each thread opens an order on the first line, activates its entry stage,
registers a few weighings on it and prints the resulting yield.  Running
the threads together also exercises concurrent order-code generation.
"""
import random, time, threading, requests

BASE = "http://127.0.0.1:5000/api"

OPERATORS = ["joão", "maria", "antônio", "carla", "pedro"]
STATIONS = ["WEB", "TABLET"]


def tablet_loop(operator):
    line_id = requests.get(f"{BASE}/linhas-producao").json()["data"][0]["id"]
    r = requests.post(f"{BASE}/ordens", json={
        "linha_producao_id": line_id, "item_entrada": "PEIXE-IN", "item_saida": "PEIXE-OUT",
        "quantidade_inicial": 500,
    })
    order = r.json()["data"]
    print(operator, r.status_code, order["codigo"])

    entry = requests.get(f"{BASE}/ordens/{order['id']}/subetapas").json()["data"][0]
    requests.patch(f"{BASE}/ordens/{order['id']}/subetapas/{entry['id']}/ativar", json={"ativa": True})
    for _ in range(3):
        r = requests.post(f"{BASE}/subetapas/{entry['id']}/pesos", json={
            "operador": operator, "peso_kg": round(random.uniform(20, 40), 2),
            "estacao": random.choice(STATIONS),
        })
        print(operator, r.status_code, r.json()["data"]["peso_kg"])
        time.sleep(random.uniform(0.1, 0.5))

    print(operator, requests.get(f"{BASE}/ordens/{order['id']}/rendimento").json()["data"])


threads = [threading.Thread(target=tablet_loop, args=(op,)) for op in OPERATORS]
[t.start() for t in threads]
[t.join() for t in threads]
