def format_lines_with_pagination(
    content: str,
    offset: int = 1,
    limit: int = 500,
) -> str:
    lines = content.split("\n")
    total_lines = len(lines)

    offset = max(1, min(offset, total_lines))
    start_idx = offset - 1
    end_idx = min(start_idx + max(limit, 1), total_lines)

    output_lines = [f"{start_idx + i + 1:>6}|{line}" for i, line in enumerate(lines[start_idx:end_idx])]

    header = f"[{total_lines} lines]"
    if start_idx > 0 or end_idx < total_lines:
        header = f"[{total_lines} lines, showing {offset}-{end_idx}]"

    return header + "\n" + "\n".join(output_lines)
