"""
Construction du client Supabase (magasin de documents + vérification des jetons).
Le client est construit une fois par application et stocké dans app.state;
les dépendances FastAPI le transmettent aux repositories (substituable en tests).
"""
from typing import Any, Dict, Optional
from fastapi import Request
from supabase import create_client, Client

from clubsphere.config import SUPABASE_URL, SUPABASE_SERVICE_KEY, SUPABASE_ANON_KEY
from clubsphere.errors import StorageError

def create_store_client(url: str = SUPABASE_URL, key: str = "") -> Client:
    """
    Crée un client avec la clé de service (bypass RLS): le serveur est seul à écrire
    les paiements et les droits. Repli sur la clé anon en dev si la clé de service manque.
    """
    key = key or SUPABASE_SERVICE_KEY or SUPABASE_ANON_KEY
    if not url or not key:
        raise StorageError("SUPABASE_URL / SUPABASE_SERVICE_KEY manquants")
    return create_client(url, key)

def get_store(request: Request) -> Client:
    """Dépendance FastAPI: client Supabase partagé de l'application."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = create_store_client()
        request.app.state.store = store
    return store

def is_unique_violation(exc: Exception) -> bool:
    """Vrai si l'erreur PostgREST correspond à une violation d'index unique (SQLSTATE 23505)."""
    code = str(getattr(exc, "code", "") or "")
    return code == "23505" or "23505" in str(exc) or "duplicate key" in str(exc).lower()

def first_row(res) -> Optional[Dict[str, Any]]:
    rows = getattr(res, "data", None) or []
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows or None
