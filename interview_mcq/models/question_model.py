from typing import List

from pydantic import BaseModel, Field, field_validator

OPTION_COUNT = 4


class PublicQuestion(BaseModel):
    """
    응시자에게 보여주는 문제 뷰 (정답/해설 없음).
    채점용 Question 리스트와 인덱스가 항상 일치해야 한다.
    """
    id: int = Field(
        ...,
        description="문제 번호 (1-based, 생성 순서)"
    )
    prompt: str = Field(
        ...,
        min_length=1,
        description="문제 본문 (마크다운/코드 블록 포함 가능)"
    )
    options: List[str] = Field(
        ...,
        description="보기 리스트 (정확히 4개, 순서 고정)"
    )


class Question(PublicQuestion):
    """
    채점용 문제 뷰.
    Pydantic v2 적용
    """
    correct_option_index: int = Field(
        ...,
        ge=0,
        le=OPTION_COUNT - 1,
        description="정답 보기 인덱스 (0-based)"
    )
    explanation: str = Field(
        default="No explanation provided.",
        description="해설"
    )

    @field_validator('options')
    @classmethod
    def validate_options_length(cls, v: List[str]) -> List[str]:
        """
        검증 로직: 보기는 정확히 4개여야 하며 빈 보기는 허용하지 않는다.
        """
        if len(v) != OPTION_COUNT:
            raise ValueError(f"보기(options)는 정확히 {OPTION_COUNT}개여야 합니다 (현재 {len(v)}개).")
        if any(not opt.strip() for opt in v):
            raise ValueError("빈 보기가 포함되어 있습니다.")
        return v

    def public_view(self) -> PublicQuestion:
        return PublicQuestion(id=self.id, prompt=self.prompt, options=list(self.options))
