"""
services/exam_service.py

시험 채점 및 결과 분석 비즈니스 로직.
순수 Python 함수로 구성. 네트워크 호출이나 전역 상태 변경 없음.
"""

from typing import Dict, List, Mapping

from interview_mcq.models.question_model import Question


def count_correct(
    questions: List[Question],
    answers: Mapping[int, int],
) -> int:
    """
    정답 개수를 센다.

    정답 판정 기준: answers[i] == questions[i].correct_option_index
    응답하지 않은 문제(키 없음)는 오답으로 처리하며 분모에서 제외하지 않는다.
    """
    return sum(
        1
        for idx, q in enumerate(questions)
        if idx in answers and answers[idx] == q.correct_option_index
    )


def calculate_score(
    questions: List[Question],
    answers: Mapping[int, int],
) -> int:
    """
    사용자 답안을 채점하여 100점 만점 환산 점수(정수 %)를 반환한다.

    Args:
        questions: 채점용 Question 리스트 (인덱스 = 문제 위치).
        answers:   확정 답안지. {문제 인덱스: 선택한 보기 인덱스}

    Returns:
        0 ~ 100 범위의 정수 점수 (0.5는 올림). questions가 빈 리스트이면 0 반환.
    """
    if not questions:
        return 0
    total = len(questions)
    # 정수 연산 반올림, 0.5는 올림
    return (count_correct(questions, answers) * 200 + total) // (2 * total)


def get_incorrect_questions(
    questions: List[Question],
    answers: Mapping[int, int],
) -> List[Dict[str, object]]:
    """
    오답 문제 리스트를 반환한다 (오답 노트용).

    미응답 문제도 포함하며 원본 순서를 유지한다.
    """
    incorrect: List[Dict[str, object]] = []
    for idx, q in enumerate(questions):
        chosen = answers.get(idx)
        if chosen == q.correct_option_index:
            continue
        incorrect.append({
            "index": idx,
            "prompt": q.prompt,
            "options": q.options,
            "user_answer": q.options[chosen] if chosen is not None else "Not Answered",
            "correct_answer": q.options[q.correct_option_index],
            "explanation": q.explanation,
        })
    return incorrect


def get_grade(score: int) -> str:
    """점수 → 등급 문자."""
    if score >= 90:
        return "A+"
    if score >= 80:
        return "A"
    if score >= 70:
        return "B"
    if score >= 60:
        return "C"
    if score >= 50:
        return "D"
    return "F"


def get_performance_level(score: int) -> str:
    """기록 화면용 성취 수준 라벨."""
    if score >= 90:
        return "Excellent"
    if score >= 75:
        return "Good"
    if score >= 60:
        return "Average"
    return "Needs Improvement"


def default_feedback(name: str, score: int) -> str:
    """AI 피드백을 얻지 못했을 때 쓰는 기본 문구."""
    return (
        f"Congratulations {name}! You scored {score}% on the test. "
        "Keep practicing to improve your knowledge."
    )
