"""SkillChain resume analysis backend."""
