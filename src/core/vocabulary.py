"""词性·句法角色·对齐关系 추천 어휘와 Import 프롬프트.

추천 값일 뿐 고정 enum이 아니다. 말뭉치에 필요하면 다른 용어도 쓸 수 있다.
"""

from typing import Optional

POS_SUGGESTIONS = [
    "名词",
    "动词",
    "形容词",
    "副词",
    "代词",
    "数词",
    "量词",
    "连词",
    "介词",
    "助词",
    "叹词",
    "拟声词",
]

SYNTAX_SUGGESTIONS = [
    "主语",
    "谓语",
    "宾语",
    "定语",
    "状语",
    "补语",
    "并列",
    "引用",
]

RELATION_SUGGESTIONS = ["语义", "字面", "语法"]


def normalize_token_attribute(value: Optional[str]) -> Optional[str]:
    """词元 속성 입력값. 공백뿐이면 None."""
    if not value:
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_relation_value(value: Optional[str]) -> str:
    """对齐 관계 입력값. 공백뿐이면 빈 문자열."""
    if not value:
        return ""
    return value.strip()


# Import 대화상자에 보여 주는 LLM 프롬프트.
RECORD_IMPORT_PROMPT = """请根据以下要求生成严格符合 JSON Schema 的文言文-白话文对译数据：
1. 输出格式必须是单个 JSON 对象，不包含额外说明文字。
2. 字段要求：
   - source：文言原文全文（字符串，必填）。
   - target：对应的白话文译文（字符串，可为空但建议填写）。
   - meta：出处或备注（字符串，可为空）。
   - source_tokens：按原文顺序的字词分词数组，每项包含 id(从1开始递增整数)、word(字符串)、pos(词性，可为 null)、syntax_role(句法角色，可为 null)、annotation(注释，可为 null)。
   - target_tokens：按译文顺序的字词分词数组，字段同上。
   - alignment：数组，描述 source_tokens 与 target_tokens 的对应关系，每项包含 source_id、target_id、relation_type（字符串说明关系）。
3. source_tokens 拼接后的内容必须与 source 完全一致；target_tokens 拼接后需与 target 完全一致（忽略空 target 的情况）。
4. 确保 source_id、target_id 均引用各自 token 列表中存在的 id。
5. 推荐取值：pos 可选{pos}；syntax_role 可选{syntax}；relation_type 可选{relation}。这些值仅作参考，若语料需要可填写其他明确的术语，但请避免为同一语法功能写出意思相同的多种表达。标点符号建议单独成词，但不设置词性、句法角色或对齐关系。
6. 注释使用原则：annotation 字段用于解释词元的特殊含义、用典出处、文化背景等。请保持克制，仅在必要时使用，如：用典典故、特殊文化含义、通假字等场景。大多数普通词元应将 annotation 设为 null。
请生成如下内容：""".format(
    pos="".join(f"“{v}”" for v in POS_SUGGESTIONS),
    syntax="".join(f"“{v}”" for v in SYNTAX_SUGGESTIONS),
    relation="".join(f"“{v}”" for v in RELATION_SUGGESTIONS),
)


def get_vocabulary() -> dict:
    """API 응답용 어휘 묶음."""
    return {
        "pos": POS_SUGGESTIONS,
        "syntax_role": SYNTAX_SUGGESTIONS,
        "relation_type": RELATION_SUGGESTIONS,
        "import_prompt": RECORD_IMPORT_PROMPT,
    }
