"""Crée des fichiers de démonstration (clients, workers, tâches) pour Alchimiste."""

import json
from pathlib import Path

import pandas as pd

DATA_DIR = Path(__file__).parent / "data"
DATA_DIR.mkdir(exist_ok=True)

# En-têtes volontairement hétérogènes : alias, casse, fautes de frappe
clients = pd.DataFrame({
    "Client ID": ["C001", "C002", "c003", "C002"],
    "Client Name": ["Acme Corp", "Globex", "Initech", "Globex (doublon)"],
    "Priority": ["3", "9", "1", "2"],
    "Requested Tasks": ["T001, T002", "T003", '["T002", "T999"]', ""],
    "Group": ["GroupA", "GroupB", "", "GroupB"],
    "Attributes": [json.dumps({"region": "EU"}), "{}", "{invalid}", ""],
})

workers = pd.DataFrame({
    "worker_id": ["W001", "W002", "W003"],
    "Worker Name": ["Alice", "Bob", "Chloé"],
    "Skills": ["python, sql", "excel", "python, design"],
    "Available Slots": ["[1, 2, 3]", "2, 4, 25", "1"],
    "Max Load": ["2", "1", "3"],
    "Worker Group": ["Dev", "Ops", "Dev"],
    "Qualification": ["4", "2", "5"],
})

tasks = pd.DataFrame({
    "TaskID": ["T001", "T002", "T003"],
    "Task Name": ["Migration", "Reporting", "Maquettes"],
    "Category": ["ETL", "Analytics", "Design"],
    "Duration": ["2", "1", "12"],
    "Required Skills": ["python, sql", "excel", "figma"],
    "Preferred Phases": ["1, 2", "2", "3"],
    "Max Concurrent": ["2", "1", "1"],
})

clients.to_csv(DATA_DIR / "clients.csv", index=False, encoding="utf-8")
workers.to_excel(DATA_DIR / "workers.xlsx", index=False, engine="openpyxl")
tasks.to_csv(DATA_DIR / "tasks.csv", index=False, sep=";", encoding="utf-8")

config = {
    "clients_file": "clients.csv",
    "workers_file": "workers.xlsx",
    "tasks_file": "tasks.csv",
    "header_overrides": {"worker": {"Max Load": "MaxLoadPerPhase"}},
}
(DATA_DIR / "config.json").write_text(json.dumps(config, indent=2), encoding="utf-8")
print(f"Fichiers créés dans {DATA_DIR}")
