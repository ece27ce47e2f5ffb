"""Indication code sets: ICD-10, CPT and HCPCS codes per clinical indication."""

from typing import Dict, List, Optional

from cms_common.models import IndicationCodeSet

RITUXIMAB = ["J9312", "J9311"]
RENAL_BIOPSY = ["50200", "50205"]
DIALYSIS_ACCESS = ["36147", "36148"]

INDICATION_CODE_SETS: Dict[str, IndicationCodeSet] = {
    ind.id: ind
    for ind in [
        IndicationCodeSet(
            id="igan",
            name="IgA Nephropathy",
            short_name="IgAN",
            description="IgA nephropathy (Berger's disease) - autoimmune kidney disease",
            category="Nephrology",
            icd10=["N02.8", "N02.B1", "N02.B2", "N02.B3", "N02.B4", "N02.B5", "N02.B6"],
            cpt=[*RENAL_BIOPSY, "50555", "50557", *DIALYSIS_ACCESS],
            hcpcs=[*RITUXIMAB, "J7502", "J7500", "J1020", "J1030", "J1040", "J2930", "J0702"],
            part_d_drugs=[
                "RITUXIMAB", "CYCLOSPORINE", "AZATHIOPRINE", "MYCOPHENOLATE",
                "MYCOPHENOLIC ACID", "PREDNISONE", "PREDNISOLONE", "METHYLPREDNISOLONE",
                "TACROLIMUS", "LISINOPRIL", "ENALAPRIL", "LOSARTAN", "VALSARTAN",
                "IRBESARTAN", "SPARSENTAN",
            ],
            drug_classes=["Immunosuppressants", "ACE Inhibitors", "ARBs", "Corticosteroids"],
            specialties=["Nephrology", "Internal Medicine"],
            comorbidity_filters={"ckd": 10},
            notes="ICD-10 N02.8 validated with ~99% PPV for IgAN (Sim et al., 2023)",
        ),
        IndicationCodeSet(
            id="pmn",
            name="Primary Membranous Nephropathy",
            short_name="PMN",
            description="Primary membranous nephropathy - autoimmune glomerular disease",
            category="Nephrology",
            icd10=[
                "N04.2", "N04.20", "N04.21", "N04.22", "N04.29",
                "N06.2", "N06.20", "N06.21", "N06.22", "N06.29",
            ],
            cpt=[*RENAL_BIOPSY, *DIALYSIS_ACCESS],
            hcpcs=[*RITUXIMAB, "J7502", "J2820", "J7516", "J1020"],
            part_d_drugs=[
                "RITUXIMAB", "CYCLOSPORINE", "TACROLIMUS", "MYCOPHENOLATE",
                "MYCOPHENOLIC ACID", "PREDNISONE", "CYCLOPHOSPHAMIDE", "CHLORAMBUCIL",
            ],
            drug_classes=["Immunosuppressants", "Corticosteroids", "Calcineurin Inhibitors"],
            specialties=["Nephrology", "Internal Medicine"],
            comorbidity_filters={"ckd": 10},
        ),
        IndicationCodeSet(
            id="ckd",
            name="Chronic Kidney Disease",
            short_name="CKD",
            description="Chronic kidney disease - progressive loss of kidney function",
            category="Nephrology",
            icd10=[
                "N18.1", "N18.2", "N18.3", "N18.30", "N18.31", "N18.32",
                "N18.4", "N18.5", "N18.6", "N18.9",
            ],
            cpt=[
                "90935", "90937", "90945", "90947", "90951", "90952", "90953", "90954",
                *DIALYSIS_ACCESS, "36800", "36810", "36815",
            ],
            hcpcs=["A4653", "A4657", "E1632", "E1634", "J0881", "J0882", "J0885", "Q4081"],
            part_d_drugs=[
                "SEVELAMER", "LANTHANUM", "CALCIUM ACETATE", "CALCITRIOL", "PARICALCITOL",
                "DOXERCALCIFEROL", "CINACALCET", "FERROUS SULFATE", "SODIUM BICARBONATE",
            ],
            drug_classes=[
                "Phosphate Binders", "ESA", "Iron Supplements",
                "ACE Inhibitors", "ARBs", "Vitamin D Analogs",
            ],
            specialties=["Nephrology", "Internal Medicine", "Family Practice"],
            comorbidity_filters={"ckd": 20},
            notes="Broad CKD definition - includes all stages.",
        ),
        IndicationCodeSet(
            id="lupus_nephritis",
            name="Lupus Nephritis",
            short_name="LN",
            description="Kidney inflammation caused by systemic lupus erythematosus (SLE)",
            category="Nephrology",
            icd10=["M32.14", "M32.15", "N08", "M32.10", "M32.11", "M32.12", "M32.19"],
            cpt=[*RENAL_BIOPSY, "36415"],
            hcpcs=[*RITUXIMAB, "J0135", "J1745", "J0490", "C9399"],
            part_d_drugs=[
                "HYDROXYCHLOROQUINE", "MYCOPHENOLATE", "MYCOPHENOLIC ACID", "AZATHIOPRINE",
                "PREDNISONE", "CYCLOPHOSPHAMIDE", "BELIMUMAB", "VOCLOSPORIN", "TACROLIMUS",
            ],
            drug_classes=[
                "Immunosuppressants", "Belimumab", "Voclosporin",
                "Corticosteroids", "Antimalarials",
            ],
            specialties=["Nephrology", "Rheumatology", "Internal Medicine"],
            comorbidity_filters={"ckd": 5},
            notes="Often comorbid with SLE - check rheumatology involvement",
        ),
        IndicationCodeSet(
            id="fsgs",
            name="Focal Segmental Glomerulosclerosis",
            short_name="FSGS",
            description="Focal segmental glomerulosclerosis - kidney scarring disease",
            category="Nephrology",
            icd10=["N04.1", "N06.1", "N07.1", "N04.10", "N04.11", "N04.19"],
            cpt=[*RENAL_BIOPSY],
            hcpcs=["J9312", "J7502", "J7516", "J1020", "J1030"],
            part_d_drugs=[
                "CYCLOSPORINE", "TACROLIMUS", "MYCOPHENOLATE", "PREDNISONE",
                "ENALAPRIL", "LISINOPRIL", "LOSARTAN",
            ],
            drug_classes=["Immunosuppressants", "Corticosteroids", "Calcineurin Inhibitors"],
            specialties=["Nephrology", "Internal Medicine"],
            comorbidity_filters={"ckd": 10},
        ),
        IndicationCodeSet(
            id="diabetic_nephropathy",
            name="Diabetic Nephropathy",
            short_name="DN",
            description="Kidney damage from diabetes mellitus",
            category="Nephrology",
            icd10=[
                "E11.21", "E11.22", "E11.29", "E10.21", "E10.22",
                "E10.29", "E13.21", "E13.22", "N08.3",
            ],
            cpt=["90935", "90937", *DIALYSIS_ACCESS, "82043", "82044", "83036"],
            hcpcs=["J1950", "J1930", "A4253", "J0881"],
            part_d_drugs=[
                "EMPAGLIFLOZIN", "DAPAGLIFLOZIN", "CANAGLIFLOZIN", "SEMAGLUTIDE",
                "LIRAGLUTIDE", "DULAGLUTIDE", "FINERENONE", "LISINOPRIL",
                "ENALAPRIL", "LOSARTAN", "IRBESARTAN", "METFORMIN",
            ],
            drug_classes=["SGLT2 Inhibitors", "GLP-1 Agonists", "ACE Inhibitors", "ARBs", "MRA"],
            specialties=["Nephrology", "Endocrinology", "Internal Medicine"],
            comorbidity_filters={"diabetes": 30, "ckd": 15},
            notes="Most common cause of ESRD. SGLT2i now standard of care.",
        ),
    ]
}


def get_indication_by_id(indication_id: str) -> Optional[IndicationCodeSet]:
    return INDICATION_CODE_SETS.get(indication_id.lower())


def get_all_indications() -> List[IndicationCodeSet]:
    return list(INDICATION_CODE_SETS.values())


def get_indications_by_category(category: str) -> List[IndicationCodeSet]:
    return [ind for ind in INDICATION_CODE_SETS.values() if ind.category == category]
