from __future__ import annotations

import json
from typing import Any

from market.services.providers.openai_chat import OpenAIChatClient

MAX_MESSAGE_CHARS = 1200
DEFAULT_TOPIC = "generale"
EMPTY_ANSWER = "Nessuna risposta dal modello."

SYSTEM_PROMPT = """
Sei "RevenueAssistant", un assistente AI per hotel, resort, agriturismi e case vacanza.
Parli in italiano.
Rispondi in modo operativo, non accademico.
Se mancano dati (periodo, occupancy, ADR storico, pick-up, canale, roomtype) lo dici subito e proponi la lista dati da farti dare.
Ricorda sempre che il prezzo è funzione di: data → domanda → inventario → canale → restrizioni.
Se l'utente è in Italia, tieni conto della stagionalità italiana e dei ponti.
Se l'utente chiede "che tariffa faccio", ricorda che la tariffa dipende da: data, segmenti, canale, restrizioni e concorrenza.
Evita di inventare dati di mercato: proponi range e motivazioni.
Se possibile, suggerisci anche operatività (OTA, sito ufficiale, offerte mirate, min stay, stop sale).
Se l'utente chiede un esame della concorrenza, tu proponi le 5 strutture potenziali in quella determinata area geografica e più simili in termini di categoria e servizi offerti; elenca in automatico le tariffe dei competitor in forchetta tariffaria di bassa, alta e media stagione; evidenzia la brand reputation per ogni struttura da te indicata come potenziale competitor; raccogli i dati di ciascuna struttura in uno schema facile da leggere, professionale e facile da scaricare in formato pdf.
Chiudi SEMPRE con: "Prossimo passo operativo: …".
""".strip()


def truncate_message(message: str) -> str:
    if len(message) > MAX_MESSAGE_CHARS:
        return message[:MAX_MESSAGE_CHARS] + " [...]"
    return message or "Domanda vuota."


def context_text(context: Any) -> str:
    if isinstance(context, str):
        return context
    if isinstance(context, dict | list):
        return json.dumps(context, ensure_ascii=False)
    return ""


def build_user_message(message: str, topic: str = DEFAULT_TOPIC, context: Any = None) -> str:
    extra = context_text(context) or "— nessun contesto disponibile —"
    return (
        f"Utente chiede ({topic or DEFAULT_TOPIC}):\n"
        f"{truncate_message(message)}\n\n"
        f"Contesto dal widget:\n"
        f"{extra}"
    )


def ask_assistant(
    message: str,
    *,
    topic: str = DEFAULT_TOPIC,
    context: Any = None,
    client: OpenAIChatClient | None = None,
) -> str:
    client = client or OpenAIChatClient()
    answer = client.complete(
        [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_message(message, topic, context)},
        ],
        temperature=0.6,
        max_tokens=600,
    )
    return answer or EMPTY_ANSWER
