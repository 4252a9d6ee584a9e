from cricket_trivia.cli.run import main

raise SystemExit(main())
