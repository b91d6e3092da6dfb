from .kv import FileKvStore, KvStore, MemoryKvStore, StoreError, open_store
from .records import (
    delete_draft,
    generate_payslip_id,
    get_payslip_by_id,
    get_payslips_by_user,
    get_user_by_email,
    get_user_payslips,
    load_draft,
    save_draft,
    save_payslip,
    save_user,
)

__all__ = [
    "FileKvStore",
    "KvStore",
    "MemoryKvStore",
    "StoreError",
    "delete_draft",
    "generate_payslip_id",
    "get_payslip_by_id",
    "get_payslips_by_user",
    "get_user_by_email",
    "get_user_payslips",
    "load_draft",
    "open_store",
    "save_draft",
    "save_payslip",
    "save_user",
]
