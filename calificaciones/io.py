# calificaciones/io.py — Lectura de planillas XLSX/XLS y extracción de materias por hoja
import io
import logging
import math
import os
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

import numpy as np
import xlrd
from openpyxl import load_workbook

from calificaciones.config import (
    COLUMNA_NOMBRE,
    COLUMNAS_NOTAS,
    FILA_DATOS_CURSO,
    FILA_INICIO_ESTUDIANTES,
    MARCADOR_ANIO,
    MARCADOR_SECCION,
    NOMBRE_TALLER,
    TITULOS_EXCLUIDOS,
)
from calificaciones.errores import ErrorLecturaLibro
from calificaciones.modelos import (
    VACIA,
    Materia,
    Nota,
    RegistroEstudiante,
    normalizar_texto,
)

logger = logging.getLogger(__name__)

_FIRMA_ZIP = b"PK"

# Primera sección de formatos como 0 / 0.00 / #,##0.0 / 0%
_PATRON_FORMATO_NUMERO = re.compile(r"^(#,##)?0(?:\.(0+))?(%?)$")


def _texto_celda(valor) -> str:
    """Representación textual de una celda tal como se vería en la planilla."""
    if valor is None:
        return ""
    if isinstance(valor, (float, np.floating)):
        if math.isnan(valor):
            return ""
        if float(valor).is_integer():
            return str(int(valor))
        return str(float(valor))
    return str(valor)


def normalizar_nota(bruto) -> Nota:
    """
    Clasifica una celda en vacía, numérica o código.
    - Vacía/nula → vacía.
    - Texto largo con 'valoración' (encabezado filtrado en los datos) → vacía.
    - Número decimal finito (punto decimal) → numérica.
    - Hasta 5 caracteres → código en mayúsculas (TEA, TEP, TED...).
    - Cualquier otro texto → vacía.
    """
    texto = _texto_celda(bruto).strip()
    if not texto:
        return VACIA

    if len(texto) > 10 and "valoración" in texto.lower():
        return VACIA

    try:
        numero = float(texto)
    except ValueError:
        numero = None
    if numero is not None and math.isfinite(numero):
        return Nota(numero)

    if len(texto) <= 5:
        return Nota(texto.upper())

    return VACIA


def _celda(fila: list, indice: int):
    if fila is None or indice >= len(fila):
        return None
    return fila[indice]


def _valor_tras_marcador(fila: list, marcador: str) -> str:
    for celda in fila or []:
        if isinstance(celda, str) and marcador in celda:
            valor = celda.split(marcador, 1)[1]
            # Año y sección pueden venir en la misma celda
            for otro in (MARCADOR_ANIO, MARCADOR_SECCION):
                if otro != marcador and otro in valor:
                    valor = valor.split(otro, 1)[0]
            return valor.strip()
    return ""


def es_nombre_estudiante(texto: str) -> bool:
    nombre = texto.strip()
    if len(nombre) <= 2:
        return False
    mayus = nombre.upper()
    return not any(titulo.upper() in mayus for titulo in TITULOS_EXCLUIDOS)


def parsear_hoja(filas: List[list], nombre_hoja: str, nombre_archivo: str) -> Optional[Materia]:
    """
    Extrae una materia de una hoja con la disposición fija de la planilla oficial.
    Devuelve None si la hoja no tiene estudiantes o si usa el nombre reservado del TALLER.
    """
    if normalizar_texto(nombre_hoja.strip()) == normalizar_texto(NOMBRE_TALLER):
        logger.info("Hoja '%s' de %s omitida: nombre reservado", nombre_hoja, nombre_archivo)
        return None

    fila_curso = filas[FILA_DATOS_CURSO] if len(filas) > FILA_DATOS_CURSO else []
    anio = _valor_tras_marcador(fila_curso, MARCADOR_ANIO)
    seccion = _valor_tras_marcador(fila_curso, MARCADOR_SECCION)
    curso = f"{anio} {seccion}".strip()
    if not curso:
        curso = os.path.splitext(os.path.basename(nombre_archivo))[0]

    estudiantes: List[RegistroEstudiante] = []
    vistos = set()
    for fila in filas[FILA_INICIO_ESTUDIANTES:]:
        nombre = _texto_celda(_celda(fila, COLUMNA_NOMBRE)).strip()
        if not es_nombre_estudiante(nombre):
            continue
        registro = RegistroEstudiante(
            nombre=nombre,
            **{tipo: normalizar_nota(_celda(fila, col)) for tipo, col in COLUMNAS_NOTAS.items()},
        )
        if registro.clave in vistos:
            logger.debug("Estudiante repetido '%s' en hoja '%s'", nombre, nombre_hoja)
            continue
        vistos.add(registro.clave)
        estudiantes.append(registro)

    if not estudiantes:
        logger.info("Hoja '%s' de %s sin estudiantes válidos", nombre_hoja, nombre_archivo)
        return None

    return Materia(nombre=nombre_hoja, curso=curso, anio=anio, seccion=seccion, estudiantes=estudiantes)


def texto_con_formato(valor, formato: Optional[str]):
    """
    Texto que Excel muestra para un número con formato entero, decimal fijo o porcentaje
    ('0', '0.0', '#,##0.00', '0%'). Con otro formato devuelve el valor sin cambios.
    """
    if isinstance(valor, bool) or not isinstance(valor, (int, float)):
        return valor
    if not math.isfinite(valor):
        return valor
    seccion = (formato or "General").split(";")[0].strip()
    m = _PATRON_FORMATO_NUMERO.match(seccion)
    if m is None:
        return valor

    miles, decimales, porcentaje = m.group(1), len(m.group(2) or ""), m.group(3)
    numero = Decimal(repr(float(valor)))
    if porcentaje:
        numero *= 100
    # Excel redondea la mitad hacia arriba: 6.5 con '0' se ve como 7
    redondeado = numero.quantize(Decimal(1).scaleb(-decimales), rounding=ROUND_HALF_UP)
    texto = f"{redondeado:,f}" if miles else f"{redondeado:f}"
    return texto + porcentaje


def _leer_xlsx(bruto: bytes) -> Dict[str, List[list]]:
    libro = load_workbook(io.BytesIO(bruto), data_only=True)
    hojas = {}
    for hoja in libro.worksheets:
        # min_row/min_col explícitos: las posiciones son absolutas desde A1
        hojas[hoja.title] = [
            [texto_con_formato(celda.value, celda.number_format) for celda in fila]
            for fila in hoja.iter_rows(min_row=1, min_col=1)
        ]
    return hojas


def _valor_xls(libro, celda):
    if celda.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if celda.ctype == xlrd.XL_CELL_NUMBER:
        formato = libro.format_map.get(libro.xf_list[celda.xf_index].format_key)
        return texto_con_formato(celda.value, formato.format_str if formato else None)
    return celda.value


def _leer_xls(bruto: bytes) -> Dict[str, List[list]]:
    # formatting_info: se necesitan los formatos de número para ver el texto mostrado
    libro = xlrd.open_workbook(file_contents=bruto, formatting_info=True)
    return {
        hoja.name: [[_valor_xls(libro, celda) for celda in hoja.row(i)] for i in range(hoja.nrows)]
        for hoja in libro.sheets()
    }


def leer_libro(archivo_o_buffer, nombre_archivo: Optional[str] = None) -> Dict[str, List[list]]:
    """
    Lee todas las hojas de un libro XLSX/XLS como listas de filas.
    Los números con formato entero o decimal fijo llegan como el texto que muestra Excel.
    Acepta bytes, un objeto con .read() (p. ej. UploadedFile de Streamlit) o una ruta.
    """
    nombre = nombre_archivo or getattr(archivo_o_buffer, "name", None) or "archivo"
    try:
        if hasattr(archivo_o_buffer, "read"):
            bruto = archivo_o_buffer.read()
        elif isinstance(archivo_o_buffer, (bytes, bytearray)):
            bruto = bytes(archivo_o_buffer)
        else:
            nombre = nombre_archivo or os.path.basename(str(archivo_o_buffer))
            with open(archivo_o_buffer, "rb") as f:
                bruto = f.read()
    except OSError as e:
        raise ErrorLecturaLibro(nombre, str(e)) from e

    if not bruto:
        raise ErrorLecturaLibro(nombre, "archivo vacío")

    try:
        if bruto[:2] == _FIRMA_ZIP:
            return _leer_xlsx(bruto)
        return _leer_xls(bruto)
    except Exception as e:
        raise ErrorLecturaLibro(nombre, str(e)) from e


def parsear_libro(hojas: Dict[str, List[list]], nombre_archivo: str) -> List[Materia]:
    materias = []
    for nombre_hoja, filas in hojas.items():
        materia = parsear_hoja(filas, nombre_hoja, nombre_archivo)
        if materia is not None:
            materias.append(materia)
    logger.info("%s: %d hoja(s), %d materia(s)", nombre_archivo, len(hojas), len(materias))
    return materias
