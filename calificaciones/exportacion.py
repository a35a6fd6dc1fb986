# calificaciones/exportacion.py — Tablas planas para descarga y escritura XLSX (pandas + openpyxl)
import io
import logging
import re
from typing import List, Optional

import pandas as pd

from calificaciones.config import (
    COLUMNAS_EXPORTACION,
    MENSAJE_MINIMO_INVALIDO,
    PREFIJOS_ESTADISTICAS,
)
from calificaciones.errores import ErrorExportacion, ErrorMinimoInvalido
from calificaciones.estadisticas import (
    calcular_estadisticas,
    detalle_por_materia,
    estado_nota,
    estadisticas_por_tipo,
)
from calificaciones.filtros import ResultadoFiltro, contiene, materias_de_estudiante
from calificaciones.modelos import (
    EstadoFiltros,
    Materia,
    Nota,
    RegistroEstudiante,
    TipoNota,
    clave_estudiante,
)
from calificaciones.procesamiento import es_materia_taller

logger = logging.getLogger(__name__)

COLUMNAS_CALIFICACIONES = ["Estudiante", "Materia", "Curso"] + [COLUMNAS_EXPORTACION[t.value] for t in TipoNota]


def valor_exportable(nota: Nota):
    """Números como celdas numéricas, códigos como texto; vacío y 0 como ''."""
    if nota.es_codigo:
        return nota.valor
    numero = nota.numero
    if numero is None:
        return ""
    return int(numero) if numero.is_integer() else numero


def _fila_calificaciones(nombre: str, materia: Materia, registro: RegistroEstudiante) -> dict:
    fila = {"Estudiante": nombre, "Materia": materia.nombre, "Curso": materia.curso}
    for tipo in TipoNota:
        fila[COLUMNAS_EXPORTACION[tipo.value]] = valor_exportable(registro.nota(tipo))
    return fila


def sufijo_archivo(texto: str) -> str:
    return re.sub(r"\s+", "_", texto.strip())


def exportar_estudiante(materias: List[Materia], nombre: str, filtros: EstadoFiltros, grupos=None) -> pd.DataFrame:
    """Calificaciones de un estudiante respetando los filtros de curso y materia."""
    registros = materias_de_estudiante(materias, nombre, filtros, grupos, ignorar_materia=False)
    filas = [
        _fila_calificaciones(nombre, r.materia, r.datos)
        for r in registros
        if not es_materia_taller(r.materia.nombre)
    ]
    return pd.DataFrame(filas, columns=COLUMNAS_CALIFICACIONES)


def exportar_calificaciones(resultado: ResultadoFiltro, filtros: EstadoFiltros) -> pd.DataFrame:
    """Todas las calificaciones de las materias visibles (búsqueda de estudiante salvo mínimo activo)."""
    filas = []
    for m in resultado.materias:
        for e in m.estudiantes:
            if (filtros.minimo_activo or not filtros.buscar_estudiante
                    or contiene(e.nombre, filtros.buscar_estudiante)):
                filas.append(_fila_calificaciones(e.nombre, m, e))
    return pd.DataFrame(filas, columns=COLUMNAS_CALIFICACIONES)


def exportar_estadisticas(materias: List[Materia], resultado: ResultadoFiltro, filtros: EstadoFiltros) -> pd.DataFrame:
    """Total/Aprobó/Desaprobó por cada tipo de calificación para cada estudiante filtrado."""
    columnas = ["Estudiante"]
    for tipo in TipoNota:
        prefijo = PREFIJOS_ESTADISTICAS[tipo.value]
        columnas += [f"{prefijo} - Total", f"{prefijo} - Aprobó", f"{prefijo} - Desaprobó"]

    filas = []
    for nombre in resultado.estudiantes:
        registros = materias_de_estudiante(materias, nombre, filtros, resultado.grupos, ignorar_materia=False)
        fila = {"Estudiante": nombre}
        for tipo, stats in estadisticas_por_tipo(registros).items():
            prefijo = PREFIJOS_ESTADISTICAS[tipo.value]
            fila[f"{prefijo} - Total"] = stats.total
            fila[f"{prefijo} - Aprobó"] = stats.aprobadas
            fila[f"{prefijo} - Desaprobó"] = stats.desaprobadas
        filas.append(fila)
    return pd.DataFrame(filas, columns=columnas)


def exportar_desaprobados(materias: List[Materia], resultado: ResultadoFiltro, filtros: EstadoFiltros) -> pd.DataFrame:
    """Estudiantes con al menos N materias desaprobadas en el tipo elegido."""
    umbral = filtros.umbral_desaprobadas
    if umbral is None:
        raise ErrorMinimoInvalido(MENSAJE_MINIMO_INVALIDO)

    tipo = TipoNota(filtros.tipo_nota_desaprobadas)
    col_desap = f"Materias Desaprobadas ({tipo.etiqueta})"
    col_total = f"Total Materias Evaluadas ({tipo.etiqueta})"
    filas = []
    for nombre in resultado.estudiantes:
        registros = materias_de_estudiante(materias, nombre, filtros, resultado.grupos, ignorar_materia=True)
        stats = calcular_estadisticas(registros, tipo)
        if stats.desaprobadas < umbral:
            continue
        cursos = list(dict.fromkeys(r.materia.curso for r in registros))
        filas.append({
            "Estudiante": nombre,
            col_desap: stats.desaprobadas,
            col_total: stats.total,
            "Promedio Final (General)": f"{stats.promedio:.1f}",
            "Cursos": ", ".join(cursos),
        })
    return pd.DataFrame(filas, columns=["Estudiante", col_desap, col_total, "Promedio Final (General)", "Cursos"])


def exportar_detalle_materias(resultado: ResultadoFiltro, tipo: TipoNota) -> pd.DataFrame:
    detalle = detalle_por_materia(resultado, tipo)
    detalle = detalle.rename(columns={"Tasa": "Tasa de Aprobación"})
    detalle["Tasa de Aprobación"] = detalle["Tasa de Aprobación"].map(lambda t: f"{t:.1f}%")
    return detalle


def exportar_matriz(resultado: ResultadoFiltro, tipo: TipoNota) -> pd.DataFrame:
    """
    Matriz estudiante × materia con '<nota> (<estado>)'. La primera fila es la leyenda.
    Una materia repetida en varios cursos ocupa una sola columna.
    """
    tipo = TipoNota(tipo)
    visibles = {clave_estudiante(e) for e in resultado.estudiantes}
    materias_por_nombre = {}
    for m in resultado.materias:
        materias_por_nombre.setdefault(m.nombre, []).append(m)

    alumnos = {}
    for m in resultado.materias:
        for e in m.estudiantes:
            if e.clave in visibles:
                alumnos.setdefault(e.clave, e.nombre)

    leyenda = {"Estudiante": "NOTA: Verde = Aprobado (TEA o ≥7), Amarillo = Desaprobado (TEP/TED o <7)"}
    for materia in materias_por_nombre:
        leyenda[materia] = "Formato: Nota (Estado)"

    filas = [leyenda]
    for nombre in sorted(alumnos.values()):
        fila = {"Estudiante": nombre}
        for materia, ofertas in materias_por_nombre.items():
            registro = _primer_registro(ofertas, nombre)
            if registro is None:
                fila[materia] = "N/A (N/A)"
                continue
            nota = registro.nota(tipo)
            fila[materia] = f"{nota.texto or 'N/A'} ({estado_nota(nota, tipo)})"
        filas.append(fila)
    return pd.DataFrame(filas, columns=["Estudiante"] + list(materias_por_nombre))


def _primer_registro(ofertas: List[Materia], nombre: str) -> Optional[RegistroEstudiante]:
    for m in ofertas:
        registro = m.buscar_estudiante(nombre)
        if registro is not None:
            return registro
    return None


def a_excel(df: pd.DataFrame, hoja: str = "Datos") -> bytes:
    """Serializa un DataFrame como libro XLSX de una hoja."""
    buffer = io.BytesIO()
    try:
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name=hoja[:31])
    except Exception as e:
        logger.exception("Fallo al exportar la hoja '%s'", hoja)
        raise ErrorExportacion(str(e)) from e
    logger.info("Exportada hoja '%s' con %d fila(s)", hoja, len(df))
    return buffer.getvalue()


def vista_materia(materia: Materia, tipos: List[TipoNota], filtros: EstadoFiltros) -> pd.DataFrame:
    """Tabla de una materia: estudiante + (nota, estado) por cada tipo seleccionado."""
    columnas = ["Estudiante"]
    for tipo in tipos:
        etiqueta = TipoNota(tipo).etiqueta
        columnas += [etiqueta, f"Estado ({etiqueta})"]

    filas = []
    for e in materia.estudiantes:
        if filtros.buscar_estudiante and not filtros.minimo_activo \
                and not contiene(e.nombre, filtros.buscar_estudiante):
            continue
        fila = {"Estudiante": e.nombre}
        for tipo in tipos:
            tipo = TipoNota(tipo)
            nota = e.nota(tipo)
            fila[tipo.etiqueta] = nota.texto or "N/A"
            fila[f"Estado ({tipo.etiqueta})"] = estado_nota(nota, tipo)
        filas.append(fila)
    return pd.DataFrame(filas, columns=columnas)
