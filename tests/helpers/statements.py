"""Schema statements used by the demo plan fixture."""

CREATE_PROC = "CREATE PROCEDURE FROM CLASS demo.Score;"
CREATE_TABLE = "CREATE TABLE scores (id bigint not null, label varchar(3));"
CREATE_VIEW = "CREATE VIEW score_counts AS SELECT label, count(*) n FROM scores GROUP BY label;"
