# app.py — Aplicación Streamlit (ES)
# - Carga en lote de planillas de calificaciones (XLSX/XLS)
# - Materia derivada "TALLER - General" por curso
# - Filtros por estudiante, materia, curso y mínimo de materias desaprobadas
# - Vistas: Calificaciones / Estudiantes / Estadísticas
# - Exportación a Excel de cada vista filtrada

import logging

import pandas as pd
import streamlit as st

from calificaciones.config import (
    MENSAJE_ERROR_CARGA,
    MENSAJE_ERROR_EXPORTACION,
    MENSAJE_MINIMO_INVALIDO,
    tabla_tipos_nota,
)
from calificaciones.errores import ErrorExportacion, ErrorLecturaLibro, ErrorMinimoInvalido
from calificaciones.estadisticas import (
    calcular_estadisticas,
    detalle_por_materia,
    estadisticas_por_curso,
    estadisticas_por_tipo,
    resumen_general,
    resumen_por_tipo,
)
from calificaciones.exportacion import (
    a_excel,
    exportar_calificaciones,
    exportar_desaprobados,
    exportar_detalle_materias,
    exportar_estadisticas,
    exportar_estudiante,
    exportar_matriz,
    sufijo_archivo,
    vista_materia,
)
from calificaciones.filtros import contar_desaprobadas, materias_de_estudiante
from calificaciones.graficos import grafico_aprobacion_por_curso, grafico_aprobacion_por_tipo
from calificaciones.modelos import EstadoFiltros, TipoNota
from calificaciones.tablero import Tablero

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("calificaciones.app")

MIME_XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PREFIJO_EXPORTACION = "_xlsx_"

# -------------------------
# Configuración de la página
# -------------------------
st.set_page_config(page_title="Sistema de Gestión de Calificaciones", layout="wide")
st.title("E.E.S.T. Nº 6 Banfield")
st.caption("Sistema de Gestión de Calificaciones")

if "tablero" not in st.session_state:
    st.session_state["tablero"] = Tablero()
tablero: Tablero = st.session_state["tablero"]

tipos_df = tabla_tipos_nota()
ETIQUETA = dict(zip(tipos_df["valor"], tipos_df["etiqueta"]))


def boton_descarga(etiqueta: str, generar, nombre_archivo: str, hoja: str, key: str):
    """
    El XLSX se genera solo al pulsar el botón y queda en la sesión hasta que cambien
    los filtros o los datos. Los errores de exportación no afectan los datos.
    """
    clave = PREFIJO_EXPORTACION + key
    if st.button(etiqueta, key=f"{key}_generar"):
        try:
            st.session_state[clave] = a_excel(generar(), hoja=hoja)
        except ErrorMinimoInvalido:
            st.error(MENSAJE_MINIMO_INVALIDO)
        except ErrorExportacion:
            st.error(MENSAJE_ERROR_EXPORTACION)
    datos = st.session_state.get(clave)
    if datos is not None:
        st.download_button(
            f"Descargar {nombre_archivo}.xlsx", data=datos, file_name=f"{nombre_archivo}.xlsx",
            mime=MIME_XLSX, key=key,
        )


def descartar_exportaciones(firma):
    """Borra los archivos generados si cambió el estado del que dependen."""
    if st.session_state.get("_firma_exportacion") == firma:
        return
    for clave in [c for c in st.session_state.keys() if str(c).startswith(PREFIJO_EXPORTACION)]:
        del st.session_state[clave]
    st.session_state["_firma_exportacion"] = firma


# -------------------------
# 1) Carga de archivos
# -------------------------
st.header("Cargar Archivos Excel")
archivos = st.file_uploader(
    "Seleccione los archivos Excel con las planillas de calificaciones",
    type=["xlsx", "xls"],
    accept_multiple_files=True,
)

if st.button("Procesar archivo(s)", type="primary", disabled=(not archivos)):
    with st.spinner("Procesando archivos..."):
        try:
            for f in archivos:
                f.seek(0)
            agregadas = tablero.cargar_archivos(archivos)
            st.success(f"{agregadas} materia(s) agregada(s).")
        except ErrorLecturaLibro as e:
            logger.warning("Carga rechazada: %s", e)
            st.error(MENSAJE_ERROR_CARGA)

if len(tablero) == 0:
    st.info("Cargue al menos una planilla para comenzar.")
    st.stop()

st.divider()

# -------------------------
# 2) Filtros
# -------------------------
st.header("Filtros")
fcol1, fcol2, fcol3 = st.columns(3)
with fcol1:
    buscar_estudiante = st.text_input("Buscar estudiante", value="", key="buscar_estudiante")
with fcol2:
    buscar_materia = st.text_input("Buscar materia", value="")
with fcol3:
    tipos_sel = st.multiselect(
        "Tipos de calificación",
        list(tipos_df["valor"]),
        default=["final"],
        format_func=lambda v: ETIQUETA[v],
    )

fcol4, fcol5 = st.columns(2)
with fcol4:
    minimo_txt = st.text_input("Mínimo de materias desaprobadas", value="")
with fcol5:
    tipo_minimo = st.selectbox(
        "Contar desaprobadas en",
        list(tipos_df["valor"]),
        index=len(tipos_df) - 1,
        format_func=lambda v: ETIQUETA[v],
    )

# Lista de cursos según las búsquedas (el curso elegido no restringe la lista)
filtros_base = EstadoFiltros(
    buscar_estudiante=buscar_estudiante,
    buscar_materia=buscar_materia,
    minimo_desaprobadas=minimo_txt,
    tipo_nota_desaprobadas=TipoNota(tipo_minimo),
)
cursos_disp = tablero.filtrar(filtros_base).cursos
curso_sel = st.selectbox(
    "Curso",
    ["all"] + cursos_disp,
    format_func=lambda c: "Todos los cursos" if c == "all" else c,
)

filtros = EstadoFiltros(
    buscar_estudiante=buscar_estudiante,
    buscar_materia=buscar_materia,
    curso=curso_sel,
    tipos_nota=tuple(TipoNota(t) for t in tipos_sel),
    minimo_desaprobadas=minimo_txt,
    tipo_nota_desaprobadas=TipoNota(tipo_minimo),
)
resultado = tablero.filtrar(filtros)
descartar_exportaciones((filtros, len(tablero)))
materias = tablero.materias

if minimo_txt.strip() and not filtros.minimo_activo:
    st.caption("Mínimo de desaprobadas inválido: el filtro se ignora.")

mcol1, mcol2, mcol3 = st.columns(3)
mcol1.metric("Materias cargadas", len(tablero))
mcol2.metric("Materias filtradas", len(resultado.materias))
mcol3.metric("Estudiantes", len(resultado.estudiantes))

ecol1, ecol2 = st.columns(2)
with ecol1:
    boton_descarga(
        "Exportar Filtrado" if filtros.hay_filtros else "Exportar Todo",
        lambda: exportar_calificaciones(resultado, filtros),
        "Todas_las_Calificaciones_Filtradas",
        "Calificaciones",
        key="exp_todo",
    )
with ecol2:
    boton_descarga(
        "Exportar Estadísticas",
        lambda: exportar_estadisticas(materias, resultado, filtros),
        "Estadisticas_Estudiantes_Filtradas",
        "Estadisticas",
        key="exp_stats",
    )

st.divider()

# -------------------------
# 3) Vistas
# -------------------------
aba1, aba2, aba3 = st.tabs([
    f"Calificaciones ({len(resultado.materias)})",
    f"Estudiantes ({len(resultado.estudiantes)})",
    "Estadísticas",
])

with aba1:
    if not resultado.materias:
        st.info("No se encontraron materias que coincidan con los filtros aplicados.")
    elif not filtros.tipos_nota:
        st.info("Seleccione al menos un tipo de calificación.")
    else:
        for m in resultado.materias:
            st.subheader(m.nombre)
            st.caption(f"Curso: {m.curso}")
            st.dataframe(vista_materia(m, list(filtros.tipos_nota), filtros), use_container_width=True, hide_index=True)

with aba2:
    if not resultado.estudiantes:
        st.info("No se encontraron estudiantes que coincidan con los filtros aplicados.")
    for i, nombre in enumerate(resultado.estudiantes):
        with st.expander(nombre):
            registros = materias_de_estudiante(materias, nombre, filtros, resultado.grupos)
            por_tipo = estadisticas_por_tipo(registros)
            resumen = pd.DataFrame([
                {
                    "Evaluación": tipo.etiqueta,
                    "Total": s.total,
                    "Aprobadas": s.aprobadas,
                    "Desaprobadas": s.desaprobadas,
                }
                for tipo, s in por_tipo.items()
            ])
            st.dataframe(resumen, use_container_width=True, hide_index=True)
            st.metric("Promedio Final", f"{por_tipo[TipoNota.FINAL].promedio:.1f}")
            st.dataframe(exportar_estudiante(materias, nombre, filtros, resultado.grupos),
                         use_container_width=True, hide_index=True)
            boton_descarga(
                "Exportar",
                lambda nombre=nombre: exportar_estudiante(materias, nombre, filtros, resultado.grupos),
                f"Calificaciones_{sufijo_archivo(nombre)}",
                "Datos",
                key=f"exp_est_{i}",
            )

with aba3:
    st.subheader("Estadísticas Generales")
    if filtros.hay_filtros:
        st.caption("Resumen de todas las materias y estudiantes (filtrado)")
    general = resumen_general(resultado, filtros)
    sufijo = " filtrados" if filtros.hay_filtros else ""
    rcol1, rcol2, rcol3, rcol4 = st.columns(4)
    rcol1.metric("Materias" + (" filtradas" if filtros.hay_filtros else ""), general["materias"])
    rcol2.metric("Estudiantes" + sufijo, general["estudiantes"])
    rcol3.metric("Cursos" + sufijo, general["cursos"])
    rcol4.metric("Registros" + sufijo, general["registros"])

    # Calificación final sobre los estudiantes filtrados
    registros_todos = [
        r for nombre in resultado.estudiantes
        for r in materias_de_estudiante(materias, nombre, filtros, resultado.grupos)
    ]
    generales = calcular_estadisticas(registros_todos, TipoNota.FINAL)
    gcol1, gcol2, gcol3, gcol4 = st.columns(4)
    gcol1.metric("Evaluaciones finales", generales.total)
    gcol2.metric("Aprobadas", generales.aprobadas)
    gcol3.metric("Desaprobadas", generales.desaprobadas)
    gcol4.metric("Promedio Final", f"{generales.promedio:.1f}")

    if filtros.minimo_activo:
        st.subheader("Alumnos con Materias Desaprobadas")
        filas = []
        for nombre in resultado.estudiantes:
            s = contar_desaprobadas(materias, nombre, filtros, resultado.grupos)
            filas.append({
                "Estudiante": nombre,
                "Desaprobadas": s.desaprobadas,
                "Evaluadas": s.total,
                "Promedio Final": round(s.promedio, 1),
            })
        st.dataframe(pd.DataFrame(filas), use_container_width=True, hide_index=True)
        boton_descarga(
            "Exportar Lista",
            lambda: exportar_desaprobados(materias, resultado, filtros),
            f"Alumnos_con_{minimo_txt.strip()}_o_mas_desaprobadas_en_{sufijo_archivo(ETIQUETA[tipo_minimo])}",
            "Desaprobados",
            key="exp_desap",
        )

    st.subheader("Resumen por Tipo de Evaluación")
    resumen_tipos = resumen_por_tipo(resultado)
    st.dataframe(resumen_tipos.drop(columns=["Tipo"]), use_container_width=True, hide_index=True)
    st.altair_chart(grafico_aprobacion_por_tipo(resumen_tipos), use_container_width=True)

    tipo_detalle = st.selectbox(
        "Detalle por materia",
        list(tipos_df["valor"]),
        index=len(tipos_df) - 1,
        format_func=lambda v: ETIQUETA[v],
    )
    st.dataframe(detalle_por_materia(resultado, TipoNota(tipo_detalle)), use_container_width=True, hide_index=True)
    dcol1, dcol2 = st.columns(2)
    with dcol1:
        boton_descarga(
            "Exportar Detalle",
            lambda: exportar_detalle_materias(resultado, TipoNota(tipo_detalle)),
            f"Detalle_Materias_{tipo_detalle}",
            "Datos",
            key=f"exp_detalle_{tipo_detalle}",
        )
    with dcol2:
        boton_descarga(
            "Exportar Materias",
            lambda: exportar_matriz(resultado, TipoNota(tipo_detalle)),
            f"Matriz_Calificaciones_{tipo_detalle}_{sufijo_archivo(ETIQUETA[tipo_detalle])}",
            "Matriz_Calificaciones",
            key=f"exp_matriz_{tipo_detalle}",
        )

    st.subheader("Estadísticas por Curso")
    cursos = estadisticas_por_curso(resultado, filtros)
    st.altair_chart(grafico_aprobacion_por_curso(cursos), use_container_width=True)
    for c in cursos:
        st.markdown(
            f"**Curso: {c['curso']}** | {c['materias']} materias - {c['estudiantes']} estudiantes únicos | "
            f"Finales: {c['aprobados']} ✓ {c['desaprobados']} ✗ ({c['tasa']:.1f}%)"
        )
        if len(c["nombres_originales"]) > 1:
            st.caption("Incluye: " + ", ".join(c["nombres_originales"]))
        st.dataframe(c["detalle"], use_container_width=True, hide_index=True)
