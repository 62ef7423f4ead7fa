"""
Document Mirror: línea de comandos.

Comandos:
  ingest  <rutas...>     Indexar archivos o carpetas
  search  <consulta>     Buscar en los documentos indexados
  delete  <file_id>      Eliminar un archivo del índice y de los registros
  records                Listar los archivos indexados
  stats                  Estadísticas del índice
  config  [clave valor]  Ver o modificar la configuración
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from config.logging_setup import setup_logging
from core.context import AppContext
from core.service import DocumentService
from domain.models import ParseProgress, ProgressStatus, SearchOptions
from ingestion.progress import CallbackObserver

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
#  Utilidades de interfaz
# ─────────────────────────────────────────────────────────────────────────────

W = 60  # ancho de la caja


def _titulo(texto: str) -> None:
    """Imprime un encabezado de sección."""
    barra = "─" * W
    relleno = max(0, W - len(texto) - 2)
    print(f"\n┌{barra}┐")
    print(f"│  {texto}{' ' * relleno}│")
    print(f"└{barra}┘\n")


def _ok(msg: str)   -> None: print(f"  ✓  {msg}")
def _aviso(msg: str) -> None: print(f"  ⚠  {msg}")
def _error(msg: str) -> None: print(f"  ✗  {msg}")


def _mostrar_progreso(progress: ParseProgress) -> None:
    if progress.status in (ProgressStatus.PARSING, ProgressStatus.INDEXING):
        print(
            f"\r  {progress.file_name}  {progress.status.value:<9} "
            f"{progress.current}/{progress.total} ({progress.percentage:3d} %)",
            end="",
            flush=True,
        )
    else:
        print()


def expandir_rutas(rutas: List[str], extensiones: List[str]) -> List[str]:
    """Expande carpetas (recursivamente) a los archivos con extensión soportada."""
    archivos: List[str] = []
    for ruta in rutas:
        path = Path(ruta)
        if path.is_dir():
            archivos.extend(
                str(p.resolve())
                for p in sorted(path.rglob("*"))
                if p.is_file() and p.suffix.lower() in extensiones
            )
        else:
            archivos.append(str(path.resolve()))
    return archivos


# ─────────────────────────────────────────────────────────────────────────────
#  Comandos
# ─────────────────────────────────────────────────────────────────────────────

async def cmd_ingest(service: DocumentService, rutas: List[str]) -> int:
    _titulo("INDEXAR DOCUMENTOS")
    extensiones = (await service.list_supported_extensions()).data or []
    archivos = expandir_rutas(rutas, extensiones)
    if not archivos:
        _aviso("No se encontraron archivos soportados.")
        return 1

    service.context.add_progress_observer(CallbackObserver(_mostrar_progreso))
    result = await service.ingest(archivos)
    if not result.success:
        _error(f"Error en la indexación: {result.error}")
        return 1

    for nombre in result.data.success:
        _ok(nombre)
    for fallo in result.data.failed:
        _error(f"{fallo.file_name}: {fallo.error}")
    print()
    _ok(f"Indexados: {len(result.data.success)}/{len(archivos)}")
    return 0 if not result.data.failed else 2


async def cmd_search(
    service: DocumentService,
    consulta: str,
    limite: Optional[int],
    filtro: Optional[str],
) -> int:
    _titulo(f"BUSCAR: {consulta}")
    options = SearchOptions(limit=limite, filter=filtro, fetch_all_hits=limite is None)
    result = await service.search(consulta, options)
    if not result.success:
        _error(result.error)
        return 1

    data = result.data
    _ok(f"{data.estimated_total_hits} resultado(s) en {data.processing_time_ms} ms")
    for hit in data.hits:
        snippet = (hit.get("_formatted") or {}).get("content", "")
        pagina = f"  págs. {hit['pageRange']}" if hit.get("pageRange") else ""
        print(f"\n  • {hit.get('fileName')}{pagina}  [{hit.get('fileId')}]")
        if snippet:
            print(f"    {snippet.strip()[:300]}")
    print()
    return 0


async def cmd_delete(service: DocumentService, file_id: str) -> int:
    result = await service.delete_file(file_id)
    if not result.success:
        _error(result.error)
        return 1
    _ok(f"Eliminado {file_id} ({result.data['deletedChunks']} fragmento(s))")
    return 0


async def cmd_records(service: DocumentService) -> int:
    _titulo("ARCHIVOS INDEXADOS")
    result = await service.list_records()
    if not result.success:
        _error(result.error)
        return 1
    if not result.data:
        _aviso("No hay archivos indexados.")
    for record in result.data:
        print(f"  {record.file_id}  {record.ingested_at:%Y-%m-%d %H:%M:%S}  {record.file_name}")
    print()
    return 0


async def cmd_stats(service: DocumentService) -> int:
    _titulo("ESTADÍSTICAS DEL ÍNDICE")
    result = await service.index_stats()
    if not result.success:
        _error(result.error)
        return 1
    print(f"  Fragmentos indexados : {result.data.number_of_documents}")
    print(f"  Indexando            : {'sí' if result.data.is_indexing else 'no'}")
    engine = (await service.engine_status()).data
    if engine is not None:
        print(f"  Motor                : {engine.host}:{engine.port} ({'activo' if engine.is_running else 'detenido'})")
    print()
    return 0


async def cmd_config(service: DocumentService, clave: Optional[str], valor: Optional[str]) -> int:
    if clave is None:
        result = await service.get_config()
    else:
        result = await service.set_config(clave, valor)
    if not result.success:
        _error(result.error)
        return 1
    for key, value in result.data["config"].items():
        print(f"  {key:<16}: {value}")
    if not result.data["isComplete"]:
        _aviso("Configuración incompleta: dataPath y meilisearchPath son obligatorios.")
    return 0


# ─────────────────────────────────────────────────────────────────────────────
#  Punto de entrada
# ─────────────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docmirror", description="Espejo local de documentos con búsqueda de texto completo."
    )
    parser.add_argument("--log-level", default=None, help="Nivel de log (DEBUG, INFO, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("ingest", help="Indexar archivos o carpetas")
    p.add_argument("paths", nargs="+")

    p = sub.add_parser("search", help="Buscar en los documentos")
    p.add_argument("query")
    p.add_argument("--limit", type=int, default=None, help="Una sola página de N resultados")
    p.add_argument("--filter", default=None, help='Ej.: fileType = "pdf"')

    p = sub.add_parser("delete", help="Eliminar un archivo por su id")
    p.add_argument("file_id")

    sub.add_parser("records", help="Listar archivos indexados")
    sub.add_parser("stats", help="Estadísticas del índice")

    p = sub.add_parser("config", help="Ver o modificar la configuración")
    p.add_argument("key", nargs="?")
    p.add_argument("value", nargs="?")
    return parser


async def run(args: argparse.Namespace, context: Optional[AppContext] = None) -> int:
    context = context or AppContext()
    service = DocumentService(context)
    try:
        await context.startup()
        if args.command == "ingest":
            return await cmd_ingest(service, args.paths)
        if args.command == "search":
            return await cmd_search(service, args.query, args.limit, args.filter)
        if args.command == "delete":
            return await cmd_delete(service, args.file_id)
        if args.command == "records":
            return await cmd_records(service)
        if args.command == "stats":
            return await cmd_stats(service)
        if args.command == "config":
            return await cmd_config(service, args.key, args.value)
        return 1
    finally:
        await context.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level or "WARNING")
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\n  ¡Hasta luego!\n")
        return 130


if __name__ == "__main__":
    sys.exit(main())
