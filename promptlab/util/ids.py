import ulid


def new_id(prefix: str = "") -> str:
    """
    Genera un ID ordenable por tiempo: prefijo + ULID (26 caracteres).
    p.ej. new_id("wf_") -> "wf_01HZX3N8W6Q5ZK7J0V2T9R4M1C"
    """
    return prefix + str(ulid.new())
