import altair as alt
import pandas as pd


def _sin_datos():
    return alt.Chart(pd.DataFrame({"msg": ["Sin datos para los filtros actuales."]})) \
             .mark_text(size=16) \
             .encode(text="msg")


def grafico_aprobacion_por_tipo(resumen: pd.DataFrame):
    """Barras apiladas aprobados/desaprobados por tipo de evaluación (salida de resumen_por_tipo)."""
    if resumen.empty or resumen["Total"].sum() == 0:
        return _sin_datos()
    largo = resumen.melt(
        id_vars=["Evaluación"],
        value_vars=["Aprobados", "Desaprobados"],
        var_name="Estado",
        value_name="Cantidad",
    )
    return alt.Chart(largo).mark_bar().encode(
        x=alt.X("Evaluación:N", title="Evaluación", sort=list(resumen["Evaluación"])),
        y=alt.Y("Cantidad:Q", title="Evaluaciones"),
        color=alt.Color(
            "Estado:N",
            title="Estado",
            scale=alt.Scale(domain=["Aprobados", "Desaprobados"], range=["#16a34a", "#dc2626"]),
        ),
        tooltip=["Evaluación", "Estado", "Cantidad"],
    ).properties(height=360)


def grafico_aprobacion_por_curso(cursos: list):
    """Tasa de aprobación de la calificación final por curso (salida de estadisticas_por_curso)."""
    datos = pd.DataFrame(
        [{"Curso": c["curso"], "Tasa": c["tasa"], "Estudiantes": c["estudiantes"]} for c in cursos],
        columns=["Curso", "Tasa", "Estudiantes"],
    )
    if datos.empty:
        return _sin_datos()
    return alt.Chart(datos).mark_bar().encode(
        x=alt.X("Curso:N", title="Curso", sort=list(datos["Curso"])),
        y=alt.Y("Tasa:Q", title="Aprobación final (%)", scale=alt.Scale(domain=[0, 100])),
        tooltip=["Curso", alt.Tooltip("Tasa:Q", format=".1f"), "Estudiantes"],
    ).properties(height=360)
